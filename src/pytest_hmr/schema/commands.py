"""Command models.

A command is an immutable `{type, ...payload}` record created by the
public constructors of `pytest_hmr.commands` and yielded by test
scripts. The interpreter looks up the handler of a command by its
`type` and by the current execution phase.
"""

from collections.abc import Callable
from re import Pattern
from typing import Any, Literal

from pydantic import Field

from pytest_hmr.models import SchemaModel
from pytest_hmr.names import Label  # noqa: TC001
from pytest_hmr.values import AnchoredValue  # noqa: TC001

from .expectations import CompiledSpec, SubHandler  # noqa: TC001

#: Console ignore policy: all, none, or a list of exact texts and regexes.
type IgnorePolicy = bool | list[str | Pattern[str]]


class BaseCommand(SchemaModel):
    """Base class of all commands."""

    #: Discriminator used to resolve the command handler.
    type: str


class SpecCommand(BaseCommand):
    """Register a spec: file variants and expectations."""

    type: Literal['spec'] = 'spec'

    source: str | None = Field(
        default=None,
        title='Spec source',
        description='Interpolated source of an inline spec.',
    )

    values: list[AnchoredValue] = Field(
        default_factory=list,
        title='Anchored values',
        description='Values interpolated into the source.',
    )

    files: dict[str, str | dict[Label, str]] | None = Field(
        default=None,
        title='File specs',
        description=(
            'Mapping form of a spec. A string is the conditional content '
            'of the file, a mapping is its content by label.'
        ),
    )


class ExpectCommand(BaseCommand):
    """Append steps to the expectations of some labels."""

    type: Literal['spec.expect'] = 'spec.expect'

    expects: list[tuple[Label, Any]] = Field(
        title='Expectations',
        description='Pairs of a label and a raw step (html, regex, sub or function).',
    )


class HookCommand(BaseCommand):
    """Set the before or after hook of a label."""

    type: Literal['spec.before', 'spec.after']

    label: Label
    sub: SubHandler


class FlushCommand(BaseCommand):
    """Assert all the pending expectations."""

    type: Literal['spec.flush'] = 'spec.flush'


class DiscardCommand(BaseCommand):
    """Drop all the pending expectations."""

    type: Literal['spec.discard'] = 'spec.discard'


class SetSpecCommand(BaseCommand):
    """Install a compiled full spec (internal)."""

    type: Literal['$$set_spec'] = '$$set_spec'

    spec: CompiledSpec


class InitCommand(BaseCommand):
    """Set the initial files, or the label of the initial variant."""

    type: Literal['init'] = 'init'

    inits: Label | dict[str, Any] = Field(
        title='Initial files',
        description=(
            'Either a condition label whose variant is used as initial '
            'files, or a mapping of paths to contents. A callable content '
            'is registered as the template of its path.'
        ),
    )


class TemplatesCommand(BaseCommand):
    """Register content templates by path."""

    type: Literal['templates'] = 'templates'

    templates: dict[str, Callable[..., Any]]


class ChangeCommand(BaseCommand):
    """Write a label variant or some files and wait for the update."""

    type: Literal['change'] = 'change'

    changes: Label | dict[str, Any] = Field(
        title='Changes',
        description=(
            'Either a condition label, or a mapping of paths to contents '
            '(template arguments for templated paths, `change.rm` to '
            'remove a file).'
        ),
    )


class WaitCommand(BaseCommand):
    """Sleep for some time or await an awaitable."""

    type: Literal['wait'] = 'wait'

    delay: float | None = Field(default=None, ge=0, description='Delay in seconds.')
    awaitable: Any = Field(default=None, description='Awaitable to wait for.')


class PageCommand(BaseCommand):
    """Resolve a property path against the live page."""

    type: Literal['page'] = 'page'

    path: tuple[str, ...] = ()
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = Field(default_factory=dict)


class InnerTextCommand(BaseCommand):
    """Read the inner text of the first element matching a selector."""

    type: Literal['inner_text'] = 'inner_text'

    selector: str


class DebugCommand(BaseCommand):
    """Return the test state."""

    type: Literal['debug'] = 'debug'


class ConsoleIgnoreCommand(BaseCommand):
    """Configure the console ignore policy."""

    type: Literal['cons.ignore_warnings', 'cons.ignore_errors']

    ignore: IgnorePolicy = Field(
        title='Ignore policy',
        description=(
            '`True` ignores all messages, `False` none, a list extends '
            'the ignored texts and regexes.'
        ),
    )


class ConsoleWaitCommand(BaseCommand):
    """Wait for a console message."""

    type: Literal['cons.wait'] = 'cons.wait'

    timeout: float = Field(default=0.05, gt=0, description='Timeout in seconds.')
    matchers: list[Any] = Field(
        default_factory=list,
        description=(
            'Exact texts, regexes, or mappings with optional `type` and '
            '`text` keys; any match ends the wait.'
        ),
    )


class BeforeLoadCommand(BaseCommand):
    """Set a sub run before the page navigation."""

    type: Literal['before_load'] = 'before_load'

    sub: SubHandler


class EffectCommand(BaseCommand):
    """Run a callable against the test state."""

    type: Literal['effect'] = 'effect'

    effect: Callable[..., Any]
