"""Line-oriented grammar of the HMR spec text format.

A spec is made of file sections and an optional expectations section:

    # Title (full specs only)
    ---- App.svelte ----
    top
    ::0 on zero
    ::1::  optional block title
      <p>multi-line variant</p>
    :::
    ****
    ::0 <h1>zero</h1>
    ::1 <h1>one</h1>

The common indentation of a section is removed. Offsets of the produced
parts refer to the original source, so that values interpolated into
the source can be located inside the parts.
"""

import logging
from typing import NamedTuple

from pytest_hmr.errors import SpecSyntaxError
from pytest_hmr.names import (
    BLOCK_CLOSE_PATTERN,
    BLOCK_OPEN_PATTERN,
    CONDITION_PATTERN,
    EXPECTATIONS_PATTERN,
    FILE_PATTERN,
    TITLE_PATTERN,
)

from .nodes import FileNode, Part, Section, SpecAst

logger = logging.getLogger(__name__)


class Line(NamedTuple):
    """A source line with its offsets."""

    #: Offset of the first character of the line.
    start: int
    #: Offset of the line break (or of the end of the source).
    end: int
    #: Offset following the line break.
    stop: int
    #: Line text, without line break.
    text: str

    @property
    def indent(self) -> int:
        """Length of the leading whitespace."""
        return len(self.text) - len(self.text.lstrip())

    @property
    def blank(self) -> bool:
        """Whether the line is empty or whitespace only."""
        return not self.text.strip()


def split_lines(source: str) -> list[Line]:
    """Split a source into lines keeping absolute offsets.

    Args:
        source: Spec source.

    Returns:
        Lines of the source.
    """
    lines = []
    offset = 0

    for text in source.split('\n'):
        end = offset + len(text)
        lines.append(Line(offset, end, min(end + 1, len(source)), text))
        offset = end + 1

    return lines


class SpecParser:
    """Parser turning a spec source into a `SpecAst`."""

    def __init__(self, source: str, *, filename: str | None = None) -> None:
        """Initialize the parser.

        Args:
            source: Interpolated spec source.
            filename: Optional name of the source, for error reporting.
        """
        self.source = source
        self.filename = filename
        self.lines = split_lines(source)

    def error(self, message: str, index: int) -> SpecSyntaxError:
        """Create a syntax error located at a source offset."""
        return SpecSyntaxError.at(message, self.source, index, filename=self.filename)

    def parse_title(self) -> str:
        """Parse the leading `# Title` line of a full spec.

        Returns:
            The spec title.

        Raises:
            SpecSyntaxError: If the first non-blank line is not a title.
        """
        for line in self.lines:
            if line.blank:
                continue
            if match := TITLE_PATTERN.match(line.text.strip()):
                return match.group('title')
            raise self.error('Expected a "# Title" line', line.start + line.indent)

        raise self.error('Expected a "# Title" line', len(self.source))

    def parse(self, *, full: bool = False) -> SpecAst:
        """Parse the source.

        Args:
            full: Whether a leading title line is required.

        Returns:
            The spec AST.

        Raises:
            SpecSyntaxError: If the source does not follow the grammar.
        """
        title = self.parse_title() if full else None

        files: list[tuple[str, list[Line]]] = []
        expectations: list[Line] | None = None
        current: list[Line] | None = None

        for line in self.lines:
            content = line.text.strip()

            if title is not None and current is None and TITLE_PATTERN.match(content):
                continue

            if match := FILE_PATTERN.match(content):
                if expectations is not None:
                    raise self.error(
                        'File sections must precede the expectations',
                        line.start + line.indent,
                    )
                current = []
                files.append((match.group('path'), current))
                continue

            if EXPECTATIONS_PATTERN.match(content):
                if expectations is not None:
                    raise self.error('Duplicated expectations section', line.start + line.indent)
                current = expectations = []
                continue

            if current is None:
                if line.blank:
                    continue
                raise self.error('Expected a file header ("---- path ----")', line.start + line.indent)

            current.append(line)

        ast = SpecAst(
            title=title,
            files=[
                FileNode(path=path, content=self.parse_section(lines, expectations=False))
                for path, lines in files
            ],
            expectations=(
                self.parse_section(expectations, expectations=True)
                if expectations is not None else None
            ),
        )

        logger.debug('parsed spec (files=%d, expectations=%s)',
                     len(ast.files), ast.expectations is not None)

        return ast

    def parse_section(self, lines: list[Line], *, expectations: bool) -> Section:
        """Parse the lines of a section into parts.

        In file sections each line of a block is a part of its own, so
        that its indentation is normalized like any other line. In the
        expectations section a block is a single part spanning its whole
        content, so that values anchored inside the block can split it.

        Args:
            lines: Lines following the section header.
            expectations: Whether the section holds expectations.

        Returns:
            The parsed section.

        Raises:
            SpecSyntaxError: On unbalanced condition blocks.
        """
        while lines and lines[0].blank:
            lines = lines[1:]
        while lines and lines[-1].blank:
            lines = lines[:-1]

        if not lines:
            return Section()

        indent = min(line.indent for line in lines if not line.blank)
        last = lines[-1]

        parts: list[Part] = []
        conditions: list[str] = []

        def end_of(line: Line) -> int:
            if expectations or line is not last:
                return line.stop
            return line.end

        def make_part(start: int, end: int, **kwargs: object) -> Part:
            return Part(text=self.source[start:end], start=start, end=end, **kwargs)

        def add_condition(label: str) -> None:
            if label not in conditions:
                conditions.append(label)

        position = 0
        while position < len(lines):
            line = lines[position]
            position += 1

            content = line.text.lstrip()
            offset = line.start + line.indent
            start = line.start + min(indent, line.indent)

            if match := BLOCK_OPEN_PATTERN.match(content):
                label = match.group('label')
                title = match.group('title') or None
                add_condition(label)

                inner = []
                while position < len(lines):
                    candidate = lines[position]
                    position += 1
                    if BLOCK_CLOSE_PATTERN.match(candidate.text.strip()):
                        break
                    inner.append(candidate)
                else:
                    raise self.error(f'Unclosed condition block {label!r}', offset)

                if expectations:
                    if inner:
                        first = inner[0]
                        block_start = first.start + min(indent, first.indent)
                        block_end = end_of(inner[-1])
                    else:
                        block_start = block_end = line.stop
                    parts.append(make_part(
                        block_start, block_end,
                        condition=label, block=True, title=title,
                    ))
                else:
                    for item in inner:
                        parts.append(make_part(
                            item.start + min(indent, item.indent), end_of(item),
                            condition=label, block=True, title=title,
                        ))
                continue

            if BLOCK_CLOSE_PATTERN.match(content):
                raise self.error('Unexpected block closer', offset)

            if match := CONDITION_PATTERN.match(content):
                label = match.group('label')
                add_condition(label)
                text_start = min(offset + match.end(), line.end)
                parts.append(make_part(text_start, end_of(line), condition=label))
                continue

            parts.append(make_part(start, end_of(line)))

        return Section(parts=parts, conditions=conditions)


def parse_spec(source: str, *, full: bool = False,
               filename: str | None = None) -> SpecAst:
    """Parse a spec source into an AST.

    Args:
        source: Interpolated spec source.
        full: Whether a leading `# Title` line is required.
        filename: Optional name of the source, for error reporting.

    Returns:
        The spec AST.
    """
    return SpecParser(source, filename=filename).parse(full=full)


def parse_title(source: str, *, filename: str | None = None) -> str:
    """Parse only the title of a full spec source."""
    return SpecParser(source, filename=filename).parse_title()
