"""HMR spec text format: grammar and compiler.

A spec declares the conditional variants of some files and the HTML
expected after each variant is written:

    ---- App.svelte ----
    <h1>
      ::0 zero
      ::1 one
    </h1>
    ****
    ::0 <h1>zero</h1>
    ::1 <h1>one</h1>
"""

from typing import TYPE_CHECKING, Any

from pytest_hmr.errors import SpecCompileError
from pytest_hmr.values import to_source

from .compiler import SpecCompiler, ValuesQueue, apply_regexes, lines_to_html
from .grammar import SpecParser, parse_spec, parse_title
from .nodes import FileNode, Part, Section, SpecAst

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pytest_hmr.schema import CompiledSpec
    from pytest_hmr.values import AnchoredValue

__all__ = (
    'FileNode',
    'Part',
    'Section',
    'SpecAst',
    'SpecCompiler',
    'SpecParser',
    'ValuesQueue',
    'apply_regexes',
    'compile_file',
    'compile_source',
    'compile_spec',
    'lines_to_html',
    'parse_spec',
    'parse_title',
    'spec_title',
)


def compile_source(source: str, values: 'Iterable[AnchoredValue]' = (), *,
                   full: bool = False,
                   filename: str | None = None) -> 'CompiledSpec':
    """Parse and compile an interpolated spec source.

    Args:
        source: Interpolated spec source.
        values: Values anchored into the source.
        full: Whether the source is a full spec (leading `# Title` line,
            at least one expectation).
        filename: Optional name of the source, for error reporting.

    Returns:
        The compiled spec.

    Raises:
        SpecCompileError: If the spec is invalid.
    """
    ast = parse_spec(source, full=full, filename=filename)
    compiled = SpecCompiler(source, values, filename=filename).compile(ast)

    if full and not compiled.expects:
        raise SpecCompileError(f'Spec {compiled.title!r} has no assertions')

    return compiled


def compile_file(content: str, *, filename: str | None = None) -> dict[str, str]:
    """Compile the conditional content of a single file.

    Used by the mapping form of specs, where each file is given as its
    own source without a file header.

    Args:
        content: File content, with condition lines and blocks.
        filename: Optional name of the source, for error reporting.

    Returns:
        Contents by condition label.
    """
    parser = SpecParser(content, filename=filename)
    section = parser.parse_section(parser.lines, expectations=False)

    return SpecCompiler.compile_file_content(section)


def compile_spec(spec: Any, *, full: bool = False,  # noqa: ANN401
                 filename: str | None = None) -> 'CompiledSpec':
    """Compile a spec given as a string, a template or a mixed sequence.

    Args:
        spec: Spec input.
        full: Whether the input is a full spec.
        filename: Optional name of the source, for error reporting.

    Returns:
        The compiled spec.
    """
    source, values = to_source(spec)

    return compile_source(source, values, full=full, filename=filename)


def spec_title(spec: Any, *, filename: str | None = None) -> str:  # noqa: ANN401
    """Read the title of a full spec without compiling it."""
    source, _ = to_source(spec)

    return parse_title(source, filename=filename)
