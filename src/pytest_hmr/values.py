"""Interpolated values of spec sources.

A spec may be written as a plain string, as a sequence of literal
strings interleaved with values, or as a PEP 750 template string. Values
are classified once, at interpolation time:

- plain text (strings, numbers, any non-callable object) is stringified
  and spliced into the source;
- generator functions and coroutine functions are *step-break points*;
- other callables are plain functions (root hooks);
- compiled regular expressions are inline HTML matcher tokens.

Anything that is not spliced is anchored by its character offset into
the resulting source, so that the compiler can place it back between
the text fragments it was written between.
"""

from collections.abc import Sequence
from inspect import iscoroutinefunction, isgeneratorfunction
from re import Pattern
from typing import Any, Literal

from pydantic import Field

from pytest_hmr.models import SchemaModel

#: A single token of an HTML expectation.
type Matcher = str | Pattern[str]

#: Expected HTML: a normalized string or an ordered list of matcher tokens.
type HtmlExpectation = str | list[Matcher]

#: Kind of an anchored value.
type ValueKind = Literal['sub', 'function', 'regex']


def is_sub(value: Any) -> bool:  # noqa: ANN401
    """Whether a value is a coroutine usable as a step (a sub).

    Args:
        value: Any runtime value.

    Returns:
        True for generator functions and coroutine functions.
    """
    return isgeneratorfunction(value) or iscoroutinefunction(value)


class AnchoredValue(SchemaModel):
    """Interpolated value anchored by character offset into a source."""

    index: int = Field(
        ge=0,
        title='Source offset',
        description='Offset of the value in the interpolated source.',
    )

    value: Any = Field(
        title='Value',
        description='A sub, a plain function or a compiled regex.',
    )

    @property
    def kind(self) -> ValueKind:
        """Classification of the anchored value."""
        if isinstance(self.value, Pattern):
            return 'regex'

        if is_sub(self.value):
            return 'sub'

        return 'function'

    @property
    def is_callable(self) -> bool:
        """Whether the value is a sub or a plain function."""
        return self.kind != 'regex'


def interpolate(strings: Sequence[str],
                values: Sequence[Any]) -> tuple[str, list[AnchoredValue]]:
    """Interleave literal strings and values into a single source.

    Args:
        strings: Literal fragments; `values[i]` sits after `strings[i]`.
        values: Interpolated values.

    Returns:
        A tuple of the source string and its anchored values.
    """
    parts: list[str] = []
    anchored: list[AnchoredValue] = []
    length = 0

    for position, string in enumerate(strings):
        parts.append(string)
        length += len(string)

        if position >= len(values):
            continue

        value = values[position]
        if callable(value) or isinstance(value, Pattern):
            anchored.append(AnchoredValue(index=length, value=value))
        else:
            text = str(value)
            parts.append(text)
            length += len(text)

    return ''.join(parts), anchored


def split_parts(parts: Sequence[Any]) -> tuple[list[str], list[Any]]:
    """Split a mixed sequence into literal strings and values.

    Consecutive strings are literal text; every other item is a value
    sitting between the surrounding strings.

    Args:
        parts: Sequence mixing literal strings and values.

    Returns:
        A tuple of literal strings and values, shaped for `interpolate`.
    """
    strings = ['']
    values = []

    for part in parts:
        if isinstance(part, str):
            strings[-1] += part
        else:
            values.append(part)
            strings.append('')

    return strings, values


def to_source(spec: Any) -> tuple[str, list[AnchoredValue]]:  # noqa: ANN401
    """Resolve any supported spec input into a source and its values.

    Args:
        spec: A string, a template string object or a mixed sequence.

    Returns:
        A tuple of the source string and its anchored values.

    Raises:
        TypeError: If the spec input type is unsupported.
    """
    if isinstance(spec, str):
        return spec, []

    # PEP 750 template strings expose `strings` and `values`.
    if hasattr(spec, 'strings') and hasattr(spec, 'values'):
        return interpolate(spec.strings, spec.values)

    if isinstance(spec, Sequence):
        return interpolate(*split_parts(spec))

    raise TypeError(f'{spec!r} is not a spec source')


class _Removed:
    """Sentinel content removing a file."""

    def __repr__(self) -> str:
        return 'change.rm'


#: Content of a file change removing the file.
REMOVED = _Removed()
