"""HMR spec tokens and naming rules.

This module defines the line patterns recognized by the spec grammar
and the strongly-typed alias used for condition labels.

The rules defined here form part of the public text format contract and
are relied upon by the grammar, the compiler and the command catalog.
"""

from re import ASCII
from re import compile as regexp
from typing import Annotated

from pydantic import BeforeValidator, Field

#: Reserved label meaning "unconditional".
WILDCARD = '*'

#: Base pattern for condition labels ("0", "1", "init", "step-2").
_LABEL_PATTERN = r'[\w.-]+'

#: File header line, e.g. `---- src/App.svelte ----`.
FILE_PATTERN = regexp(r'^-{3,}\s*(?P<path>\S(?:.*?\S)?)\s*-{3,}\s*$')

#: Expectations separator, a line of three or more stars (`****` or `* * *`).
EXPECTATIONS_PATTERN = regexp(r'^\*(?:\s*\*){2,}\s*$')

#: Title line of a full spec, e.g. `# updates the heading`.
TITLE_PATTERN = regexp(r'^#\s*(?P<title>\S(?:.*\S)?)\s*$')

#: Opener of a multi-line condition block, with an optional free-text title.
BLOCK_OPEN_PATTERN = regexp(
    rf'^::(?P<label>{_LABEL_PATTERN})::(?:\s+(?P<title>.*?))?\s*$',
    flags=ASCII,
)

#: Closer of a multi-line condition block, a line of one or more colons.
BLOCK_CLOSE_PATTERN = regexp(r'^:+\s*$')

#: Single-line condition, e.g. `::0 <h1>zero</h1>`.
CONDITION_PATTERN = regexp(
    rf'^::(?P<label>{_LABEL_PATTERN})(?:[ \t]|$)',
    flags=ASCII,
)


def to_label(value: object) -> str:
    """Stringify a condition label.

    Numeric labels are accepted anywhere a label is expected and are
    converted to their string form, so that `change(1)` and `::1` refer
    to the same expectation.

    Args:
        value: Raw label value.

    Returns:
        The label as a string.

    Raises:
        ValueError: If the value can not be used as a label.
    """
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError(f'{value!r} can not be used as a condition label')

    return str(value)


Label = Annotated[
    str, BeforeValidator(to_label), Field(
        min_length=1,
        title='Condition label',
        description=(
            'Identifier selecting one variant of a file content and '
            'one expected outcome. Numeric labels are stringified.'
        ),
        examples=['0', '1', 'init'],
    ),
]
