"""Spec AST nodes.

The grammar produces a generic tree of files and an optional
expectations section. Each section is an ordered list of parts, each
part being one fragment of text optionally tagged with a condition
label. Offsets are absolute character positions into the interpolated
source, so that anchored values can be located inside parts.
"""

from pydantic import Field

from pytest_hmr.models import DescribedMixin, SchemaModel
from pytest_hmr.names import Label  # noqa: TC001


class Part(DescribedMixin, SchemaModel):
    """A text fragment of a section.

    For parts of an expectations section `text` is exactly the source
    slice `[start, end)`. A block part holds the whole content of a
    multi-line condition block, its `title` being the free text that
    follows the block opener.
    """

    condition: Label | None = Field(
        default=None,
        title='Condition label',
        description='Label of the variant the part belongs to, if any.',
    )

    text: str = Field(
        title='Text',
        description='Text of the fragment, including its line break.',
    )

    start: int = Field(
        ge=0,
        title='Start offset',
        description='Offset of the first character of the text in the source.',
    )

    end: int = Field(
        ge=0,
        title='End offset',
        description='Offset following the last character of the text in the source.',
    )

    block: bool = Field(
        default=False,
        title='Block flag',
        description='Whether the part comes from a multi-line condition block.',
    )


class Section(SchemaModel):
    """Ordered parts of a file content or of the expectations."""

    parts: list[Part] = Field(default_factory=list)

    conditions: list[Label] = Field(
        default_factory=list,
        title='Conditions',
        description='Condition labels of the section, by first appearance.',
    )


class FileNode(SchemaModel):
    """A file of the spec and its conditional content."""

    path: str = Field(
        min_length=1,
        title='File path',
        description='Path of the file, relative to the application root.',
    )

    content: Section = Field(default_factory=Section)


class SpecAst(DescribedMixin, SchemaModel):
    """Root node of a parsed spec."""

    files: list[FileNode] = Field(default_factory=list)

    expectations: Section | None = Field(
        default=None,
        title='Expectations',
        description='Expected outputs, when the spec has a `****` section.',
    )
