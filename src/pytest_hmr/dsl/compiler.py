"""Spec compiler.

Turns a spec AST and its anchored values into a file content table and
an ordered mapping of expectations. Compilation is pure: the same AST
and values always produce structurally identical results.
"""

import logging
from collections import deque
from typing import TYPE_CHECKING, Any

from pytest_hmr.errors import SpecCompileError
from pytest_hmr.html import normalize_expectation, normalize_html
from pytest_hmr.names import WILDCARD
from pytest_hmr.schema import CompiledSpec, Expectation, Step

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from pytest_hmr.values import AnchoredValue, HtmlExpectation, Matcher

    from .nodes import Part, Section, SpecAst

logger = logging.getLogger(__name__)

SUB_OUTSIDE_CONDITION = 'Sub handler must be inside an assertion condition'
TOO_MANY_HOOKS = 'Only two root level hooks are allowed (before and after)'
TOO_MANY_BLOCKS = 'Only a single condition block can have sub steps'
FUNCTION_IN_BLOCK = (
    'Plain functions are not allowed in a condition block '
    '(use a generator function to make a step)'
)


class ValuesQueue:
    """FIFO of anchored values consumed by increasing source offset."""

    def __init__(self, values: 'Iterable[AnchoredValue]', *,
                 source: str = '', filename: str | None = None) -> None:
        """Initialize the queue.

        Args:
            values: Anchored values, sorted by offset.
            source: Source the values are anchored into.
            filename: Optional name of the source.
        """
        self.values = deque(values)
        self.source = source
        self.filename = filename

    def __len__(self) -> int:
        """Number of values not consumed yet."""
        return len(self.values)

    def shift(self, start: int, end: int) -> list['AnchoredValue']:
        """Pop the values anchored into the range `[start, end)`.

        Args:
            start: Start offset of the range.
            end: End offset of the range.

        Returns:
            Values of the range, in source order.

        Raises:
            SpecCompileError: If a value sits before the range, meaning
                that it was not part of any assertion condition.
        """
        result = []

        while self.values:
            index = self.values[0].index
            if index < start:
                raise SpecCompileError.at(
                    SUB_OUTSIDE_CONDITION,
                    self.source,
                    index,
                    filename=self.filename,
                )
            if index >= end:
                break
            result.append(self.values.popleft())

        return result


def apply_regexes(values: 'Sequence[AnchoredValue]', text: str,
                  start: int) -> tuple[list['Matcher'], list['AnchoredValue']]:
    """Splice regular expressions into a text as matcher tokens.

    Whitespace-only fragments between tokens are dropped.

    Args:
        values: Values anchored into the text.
        text: Text fragment.
        start: Source offset of the text.

    Returns:
        A tuple of matcher tokens and the values that are not regexes.
    """
    matchers: list[Matcher] = []
    rest: list[AnchoredValue] = []

    right = text
    cursor = 0

    for item in values:
        if item.kind != 'regex':
            rest.append(item)
            continue
        # the text may start after the value when its indentation was removed
        cut = max(0, item.index - start - cursor)
        left, right = right[:cut], right[cut:]
        cursor += cut
        if left.strip():
            matchers.append(left)
        matchers.append(item.value)

    if right.strip():
        matchers.append(right)

    return matchers, rest


def lines_to_html(lines: 'Iterable[Sequence[Matcher]]') -> 'HtmlExpectation':
    """Assemble the lines of an html step.

    Args:
        lines: Lines of matcher tokens.

    Returns:
        A normalized string when all tokens are literal, otherwise a
        list of normalized tokens.
    """
    tokens = [token for line in lines for token in line]

    if all(isinstance(token, str) for token in tokens):
        return normalize_html(''.join(tokens))  # type: ignore[arg-type]

    return normalize_expectation(tokens)


class _Bucket:
    """Mutable accumulator of the expectation of one label."""

    def __init__(self, label: str) -> None:
        self.label = label
        self.title: str | None = None
        self.lines: list[list[Matcher]] = []
        self.steps: list[tuple[str, Any]] | None = None
        self.steps_index = 0
        self.before: Any = None
        self.after: Any = None

    def register_hook(self, hook: Any) -> bool:  # noqa: ANN401
        """Set the first free root hook, returning False if none is left."""
        if self.before is None:
            self.before = hook
        elif self.after is None:
            self.after = hook
        else:
            return False
        return True

    def has_html(self) -> bool:
        return any(self.lines)


class SpecCompiler:
    """Compiler of spec ASTs into file content tables and expectations."""

    def __init__(self, source: str, values: 'Iterable[AnchoredValue]' = (), *,
                 filename: str | None = None) -> None:
        """Initialize the compiler.

        Args:
            source: Interpolated spec source the AST was parsed from.
            values: Values anchored into the source.
            filename: Optional name of the source, for error reporting.
        """
        self.source = source
        self.filename = filename
        self.values = ValuesQueue(values, source=source, filename=filename)

    def error(self, message: str, index: int) -> SpecCompileError:
        """Create a compile error located at a source offset."""
        return SpecCompileError.at(message, self.source, index, filename=self.filename)

    def compile(self, ast: 'SpecAst') -> CompiledSpec:
        """Compile a spec AST.

        Args:
            ast: Parsed spec.

        Returns:
            The compiled spec.

        Raises:
            SpecCompileError: On structural violations.
        """
        files = {
            node.path: self.compile_file_content(node.content)
            for node in ast.files
        }

        expects = {}
        if ast.expectations is not None:
            expects = self.compile_steps(ast.expectations)

        if self.values:
            raise self.error(SUB_OUTSIDE_CONDITION, self.values.values[0].index)

        logger.debug('compiled spec (files=%s, labels=%s)', list(files), list(expects))

        return CompiledSpec(title=ast.title, files=files, expects=expects)

    @staticmethod
    def compile_file_content(section: 'Section') -> dict[str, str]:
        """Compile the content of a file by condition label.

        Unconditional parts go into every bucket; condition parts only
        into their own. The wildcard bucket is dropped as soon as the
        file has a condition.

        Args:
            section: Parsed file content.

        Returns:
            Mapping of labels to file contents.
        """
        if not section.parts:
            return {}

        buckets: dict[str, list[str]] = {WILDCARD: []}
        for label in section.conditions:
            buckets[label] = []

        for part in section.parts:
            if part.condition is None:
                for bucket in buckets.values():
                    bucket.append(part.text)
            else:
                buckets.setdefault(part.condition, []).append(part.text)

        if len(buckets) > 1:
            del buckets[WILDCARD]

        return {label: ''.join(texts) for label, texts in buckets.items()}

    def split_steps(self, part: 'Part',
                    values: 'Sequence[AnchoredValue]') -> list[tuple[str, Any]]:
        """Split a block into html and sub steps.

        Each sub is a step boundary: pending text is flushed as an html
        step before it. Regexes are merged as tokens into the html step
        they sit in. Whitespace-only text never makes a step.

        Args:
            part: Block part.
            values: Values anchored into the block.

        Returns:
            Raw steps, as `('html', tokens)` or `('sub', handler)` pairs.

        Raises:
            SpecCompileError: If a plain function sits in the block.
        """
        subs = [item for item in values if item.is_callable]
        regexes = ValuesQueue(
            (item for item in values if not item.is_callable),
            source=self.source,
            filename=self.filename,
        )

        steps: list[tuple[str, Any]] = []
        left = part.start

        def push_text(text: str) -> None:
            matchers, _ = apply_regexes(
                regexes.shift(part.start, left + len(text)),
                text,
                left,
            )
            if matchers:
                steps.append(('html', matchers))

        for item in subs:
            if item.kind == 'function':
                raise self.error(FUNCTION_IN_BLOCK, item.index)
            if item.index > left:
                push_text(part.text[left - part.start:item.index - part.start])
                left = item.index
            steps.append(('sub', item.value))

        if left < part.end:
            push_text(part.text[left - part.start:])

        return steps

    def compile_steps(self, section: 'Section') -> dict[str, Expectation]:
        """Compile the expectations section.

        Args:
            section: Parsed expectations.

        Returns:
            Expectations by label, in order of first appearance.

        Raises:
            SpecCompileError: On misplaced values, extra hooks or blocks,
                or HTML lines that no step would assert.
        """
        if not section.parts:
            return {}

        buckets = {label: _Bucket(label) for label in section.conditions}

        for part in section.parts:
            values = self.values.shift(part.start, part.end)

            if part.condition is None:
                matchers, rest = apply_regexes(values, part.text, part.start)
                if rest:
                    raise self.error(SUB_OUTSIDE_CONDITION, rest[0].index)
                for bucket in buckets.values():
                    bucket.lines.append(matchers)
                continue

            bucket = buckets[part.condition]
            if part.title:
                bucket.title = part.title

            if not values:
                bucket.lines.append([part.text])

            elif part.block:
                if bucket.steps is not None:
                    raise self.error(TOO_MANY_BLOCKS, part.start)
                bucket.steps = self.split_steps(part, values)
                bucket.steps_index = len(bucket.lines)

            else:
                matchers, rest = apply_regexes(values, part.text, part.start)
                if matchers:
                    bucket.lines.append(matchers)
                for item in rest:
                    if not bucket.register_hook(item.value):
                        raise self.error(TOO_MANY_HOOKS, item.index)

        return {
            label: self.spread_steps(bucket)
            for label, bucket in buckets.items()
        }

    def spread_steps(self, bucket: _Bucket) -> Expectation:
        """Build the expectation of a label from its bucket.

        The plain lines of the label surround every html step of its
        block, in source order.

        Args:
            bucket: Accumulated lines, steps and hooks of the label.

        Returns:
            The compiled expectation.

        Raises:
            SpecCompileError: If the label has HTML lines but its block
                has no html step to assert them.
        """
        expectation = Expectation(
            title=bucket.title,
            before=bucket.before,
            after=bucket.after,
        )

        if bucket.steps is None:
            return expectation.add_step(Step(html=lines_to_html(bucket.lines)))

        if bucket.has_html() and not any(kind == 'html' for kind, _ in bucket.steps):
            raise SpecCompileError(
                f'Condition {bucket.label!r} has HTML lines but no HTML step: '
                'its HTML expectations would be ignored',
            )

        before = bucket.lines[:bucket.steps_index]
        after = bucket.lines[bucket.steps_index:]

        steps = []
        for kind, value in bucket.steps:
            if kind == 'sub':
                steps.append(Step(sub=value))
            else:
                steps.append(Step(html=lines_to_html([*before, value, *after])))

        return expectation.model_copy(update={'steps': steps})
