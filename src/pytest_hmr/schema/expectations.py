"""Compiled expectations.

An expectation is the ordered set of steps asserted after the update of
one condition label. Steps are a tagged variant: exactly one of `html`,
`sub` or `function` is set. Optional `before` and `after` hooks bracket
the steps.
"""

from collections.abc import Callable
from re import Pattern
from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field, model_validator

from pytest_hmr.models import DescribedMixin, SchemaModel
from pytest_hmr.names import Label  # noqa: TC001

if TYPE_CHECKING:
    from typing import Self

#: A coroutine run as a step or a hook: a generator function, a coroutine
#: function, a plain callable, or a list of those run concurrently.
type SubHandler = Callable[..., Any] | list[Any] | tuple[Any, ...]

#: Kind of a step.
type StepKind = Literal['html', 'sub', 'function']


class Step(SchemaModel):
    """A single unit of an expectation."""

    html: str | list[str | Pattern[str]] | None = Field(
        default=None,
        title='Expected HTML',
        description=(
            'Normalized HTML string compared for equality, or an ordered '
            'list of literal strings and regular expressions matched '
            'with a whitespace-tolerant cursor.'
        ),
    )

    sub: SubHandler | None = Field(
        default=None,
        title='Sub',
        description='Nested coroutine driven with the command processor.',
    )

    function: Callable[..., Any] | None = Field(
        default=None,
        title='Function',
        description='Plain callback, awaited when it returns an awaitable.',
    )

    @model_validator(mode='after')
    def check_variant(self) -> 'Self':
        """Ensure exactly one variant is set."""
        variants = [
            name
            for name in ('html', 'sub', 'function')
            if getattr(self, name) is not None
        ]

        if len(variants) != 1:
            raise ValueError(f'a step must have exactly one of html, sub or function (got {variants})')

        return self

    @property
    def kind(self) -> StepKind:
        """Variant of the step."""
        if self.html is not None:
            return 'html'
        if self.sub is not None:
            return 'sub'
        return 'function'


class Expectation(DescribedMixin, SchemaModel):
    """Steps asserted after the update of one condition label."""

    before: SubHandler | None = Field(
        default=None,
        title='Before hook',
        description='Run before the first step.',
    )

    after: SubHandler | None = Field(
        default=None,
        title='After hook',
        description='Run after the last step.',
    )

    steps: list[Step] = Field(
        default_factory=list,
        title='Steps',
        description='Steps run in declared order.',
    )

    def add_step(self, step: Step) -> 'Self':
        """Return a copy of the expectation with a step appended."""
        return self.model_copy(update={'steps': [*self.steps, step]})

    def with_hook(self, hook: Literal['before', 'after'], sub: SubHandler) -> 'Self':
        """Return a copy of the expectation with a hook set."""
        return self.model_copy(update={hook: sub})


class CompiledSpec(DescribedMixin, SchemaModel):
    """Result of a spec compilation."""

    files: dict[str, dict[Label, str]] = Field(
        default_factory=dict,
        title='File content table',
        description=(
            'Content of each file by condition label. The wildcard key is '
            'only present for files without any condition.'
        ),
    )

    expects: dict[Label, Expectation] = Field(
        default_factory=dict,
        title='Expectations',
        description='Expectations by condition label, in order of first appearance.',
    )
