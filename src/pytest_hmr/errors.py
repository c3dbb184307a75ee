"""Core exception hierarchy.

This module defines base error and warning types used across the library
to report spec compilation failures, invalid command usage, failures of
the live environment and unexpected output of the page under test.
"""

from os import linesep
from re import Pattern
from typing import TYPE_CHECKING, Any, TypedDict

from yaml import dump

if TYPE_CHECKING:
    from importlib.metadata import EntryPoint
    from typing import Self

SNIPPET_ELLIPSIS = f' ...{linesep}'
SNIPPET_INDENT = 2

FORMAT_REPLACER = '<runtime object>'
FORMAT_FILENAME = '<inline spec>'
FORMAT_INDENT = 4

SCALARS = (str, bytes, int, float, bool)
MAPPINGS = (dict,)
SEQUENCES = (list, tuple, set)


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Name of the spec source where the error occurred.
    filename: str | None

    #: Line number in the spec source.
    line_num: int | None
    #: Column number in the spec source.
    column_num: int | None

    #: Condition label of the expectation being asserted.
    label: str | None
    #: Number of the expectation step.
    step_num: int | None
    #: Kind of the failing step (`html`, `sub`, `function`, `before`, `after`).
    step_kind: str | None

    #: Underlying exception that triggered formatting.
    error: Exception | None

    #: Data associated with the error, rendered as a YAML snippet.
    element: Any


class ErrorFormatter:
    """Utility class for formatting HMR errors.

    This formatter is responsible for producing human-readable
    error messages with optional source location and YAML-based
    contextual snippets.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and data.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        message += linesep
        message += cls.get_location_string(context, indent=FORMAT_INDENT)
        message += cls.get_snippet_string(context, indent=FORMAT_INDENT * 2)

        return message

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Format source and execution location information.

        Args:
            context: Error context containing location metadata.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted location string including filename, line,
            column, label and step when available.
        """
        indent = cls._ensure_indent(indent)

        filename = context.get('filename')
        if not filename:
            filename = FORMAT_FILENAME

        message = f'{indent}in "{filename}"'
        if (line_num := context.get('line_num')) is not None:
            line_num += 1
            message += f', line {line_num}'
            if (column_num := context.get('column_num')) is not None:
                column_num += 1
                message += f', column {column_num}'
        message += linesep

        if (label := context.get('label')) is not None:
            message += f'{indent}after update {label!r}'
            if (step_num := context.get('step_num')) is not None:
                message += f', step {step_num}'
            if step_kind := context.get('step_kind'):
                message += f' ({step_kind})'
            message += linesep

        return message

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: str | int | None = None) -> str:
        """Generate a formatted snippet illustrating the error context.

        Args:
            context: Error context containing element data.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted multi-line snippet string, or an empty string
            if no snippet data is available.
        """
        indent = cls._ensure_indent(indent)

        if (element := context.get('element')) is None:
            return ''

        snippet = f'{indent}{SNIPPET_ELLIPSIS}'
        snippet += cls._make_yaml(element, indent)
        snippet += linesep

        return snippet

    @classmethod
    def _filter_unsafe(cls, value: Any) -> Any:  # noqa: ANN401
        """Recursively sanitize values for safe YAML serialization.

        Regular expressions are rendered with their source pattern, other
        non-scalar and non-container objects are replaced with a
        placeholder.

        Args:
            value: Arbitrary value to sanitize.

        Returns:
            A YAML-safe representation of the value.
        """
        if value is None or isinstance(value, SCALARS):
            return value

        if isinstance(value, Pattern):
            return f'/{value.pattern}/'

        if isinstance(value, MAPPINGS):
            return {
                str(key): cls._filter_unsafe(item)
                for key, item in value.items()
            }

        if isinstance(value, SEQUENCES):
            return [
                cls._filter_unsafe(item)
                for item in value
            ]

        return FORMAT_REPLACER

    @classmethod
    def _make_yaml(cls, value: Any, indent: str = '') -> str:  # noqa: ANN401
        """Serialize a value to an indented YAML string.

        Args:
            value: Arbitrary value to serialize.
            indent: Optional indentation prefix.

        Returns:
            A YAML-formatted string representation of the value.
        """
        data = dump(
            cls._filter_unsafe(value),
            indent=SNIPPET_INDENT,
            sort_keys=False,
            allow_unicode=True,
        )

        return cls._make_indent(data, indent)

    @staticmethod
    def _make_indent(value: str, indent: str) -> str:
        """Apply indentation to a multi-line string.

        Empty or whitespace-only lines are omitted.

        Args:
            value: Original multi-line string.
            indent: Indentation prefix.

        Returns:
            Indented string.
        """
        if not indent:
            return value

        return linesep.join(
            f'{indent}{line}'
            for line in value.splitlines()
            if line.strip()
        )

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Normalize indentation input.

        Args:
            indent: Indentation as string or number of spaces.

        Returns:
            A string consisting of spaces or the provided string.
        """
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        if isinstance(indent, str):
            return indent

        return ''


class PluginWarning(UserWarning):
    """Warning emitted for non-fatal plugin-related issues.

    This warning is used when a command plugin can not be loaded or
    shadows an existing handler, but the issue does not prevent further
    execution (when running in relaxed mode).
    """


class HMRError(Exception, ErrorFormatter):
    """Base exception for all pytest-hmr errors."""

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context containing optional runtime values.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return self.format(self.message, self.context)


class PluginError(HMRError):
    """Error raised for fatal plugin-related failures."""

    def __init__(self, message: str, *,
                 entrypoint: 'EntryPoint | None' = None) -> None:
        """Initialize a plugin error.

        Args:
            message: Human-readable error description.
            entrypoint: Optional plugin entry point associated with the error.
        """
        self.entrypoint = entrypoint

        super().__init__(message)


class SpecCompileError(HMRError):
    """Error raised when a spec can not be compiled.

    Covers structural violations such as a sub handler outside of any
    condition, more than two root hooks for a label, or HTML lines that
    would never be asserted. Always fatal at spec registration.
    """

    @classmethod
    def at(cls, message: str, source: str, index: int, *,
           filename: str | None = None) -> 'Self':
        """Create an error pointing at a character offset of a source.

        Args:
            message: Human-readable error message.
            source: Full spec source.
            index: Character offset of the offending element.
            filename: Optional name of the spec source.

        Returns:
            An error with line and column information.
        """
        line_num = source.count('\n', 0, index)
        column_num = index - (source.rfind('\n', 0, index) + 1)

        return cls(message, context=ErrorContext(
            filename=filename,
            line_num=line_num,
            column_num=column_num,
        ))


class SpecSyntaxError(SpecCompileError):
    """Error raised when a spec text does not follow the grammar."""


class UsageError(HMRError):
    """Error raised for invalid command arguments or sequencing."""


class HMREnvironmentError(HMRError):
    """Error raised when the live environment fails.

    Wraps failures of the reset, write-and-settle or page loading
    collaborators (for example a compile error reported by the bundler).
    """


class ConsoleError(HMRError):
    """Error raised for unexpected console errors or warnings of the page."""


class PageError(HMRError):
    """Error raised for an uncaught exception of the page under test."""


class FailError(HMRError):
    """Error raised through the fail signal of a running test."""
