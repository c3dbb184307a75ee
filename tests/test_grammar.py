"""Tests for the line-oriented spec grammar."""

import pytest

from pytest_hmr.errors import SpecSyntaxError
from pytest_hmr.dsl import parse_spec, parse_title
from pytest_hmr.dsl.grammar import split_lines

COUNTER_SPEC = '''
---- App.svelte ----
<h1>
  ::0 zero
  ::1 one
</h1>
****
::0 <h1>zero</h1>
::1 <h1>one</h1>
'''

BLOCK_SPEC = '''
---- App.svelte ----
::0::
  <p>a</p>
  <p>b</p>
::
::1 <p>c</p>
****
::0:: the first variant
  <p>a</p>
  <p>b</p>
:::
::1 <p>c</p>
'''


def test_split_lines_offsets() -> None:
    """Keep absolute offsets of each line."""
    source = 'ab\ncd\n'
    lines = split_lines(source)

    assert [line.text for line in lines] == ['ab', 'cd', '']
    assert [(line.start, line.end, line.stop) for line in lines] == [(0, 2, 3), (3, 5, 6), (6, 6, 6)]


def test_parse_files_and_expectations() -> None:
    """Parse file sections and the expectations section."""
    ast = parse_spec(COUNTER_SPEC)

    assert ast.title is None
    assert [node.path for node in ast.files] == ['App.svelte']

    content = ast.files[0].content
    assert content.conditions == ['0', '1']
    assert [(part.condition, part.text) for part in content.parts] == [
        (None, '<h1>\n'),
        ('0', 'zero\n'),
        ('1', 'one\n'),
        (None, '</h1>'),
    ]

    expectations = ast.expectations
    assert expectations is not None
    assert expectations.conditions == ['0', '1']
    assert [(part.condition, part.text) for part in expectations.parts] == [
        ('0', '<h1>zero</h1>\n'),
        ('1', '<h1>one</h1>\n'),
    ]


def test_expectation_parts_are_source_slices() -> None:
    """Match the text of every expectation part with its source range."""
    ast = parse_spec(BLOCK_SPEC)

    assert ast.expectations is not None
    for part in ast.expectations.parts:
        assert BLOCK_SPEC[part.start:part.end] == part.text


def test_parse_blocks() -> None:
    """Split file blocks by line and keep expectation blocks whole."""
    ast = parse_spec(BLOCK_SPEC)

    file_parts = ast.files[0].content.parts
    assert [(part.condition, part.block, part.text) for part in file_parts] == [
        ('0', True, '  <p>a</p>\n'),
        ('0', True, '  <p>b</p>\n'),
        ('1', False, '<p>c</p>'),
    ]

    assert ast.expectations is not None
    block, line = ast.expectations.parts
    assert block.block
    assert block.title == 'the first variant'
    assert block.text == '  <p>a</p>\n  <p>b</p>\n'
    assert not line.block
    assert line.text == '<p>c</p>\n'


def test_parse_indented_spec() -> None:
    """Remove the common indentation of each section."""
    source = '''
        ---- main.js ----
        console.log(
          ::0 'hello'
        )
        * * *
        ::0 hello
    '''
    ast = parse_spec(source)

    assert [part.text for part in ast.files[0].content.parts] == [
        'console.log(\n',
        "'hello'\n",
        ')',
    ]


def test_parse_full_spec_title() -> None:
    """Read the title of a full spec."""
    source = '# updates the counter\n' + COUNTER_SPEC

    assert parse_title(source) == 'updates the counter'
    assert parse_spec(source, full=True).title == 'updates the counter'


@pytest.mark.parametrize('source, expect_message', (
    pytest.param('---- a ----\nx\n', 'Expected a "# Title" line', id='missing title'),
    pytest.param('', 'Expected a "# Title" line', id='empty source'),
))
def test_parse_full_spec_without_title(source: str, expect_message: str) -> None:
    """Require a title line for full specs."""
    with pytest.raises(SpecSyntaxError, match=expect_message):
        parse_spec(source, full=True)


@pytest.mark.parametrize('source, expect_message', (
    pytest.param(
        'stray\n---- a ----\n',
        r'Expected a file header \("---- path ----"\)',
        id='content before header',
    ),
    pytest.param(
        '****\n::0 a\n---- a ----\n',
        'File sections must precede the expectations',
        id='file after expectations',
    ),
    pytest.param(
        '****\n::0 a\n****\n',
        'Duplicated expectations section',
        id='duplicated expectations',
    ),
    pytest.param(
        '****\n::0::\n  a\n',
        "Unclosed condition block '0'",
        id='unclosed block',
    ),
    pytest.param(
        '---- a ----\nx\n::\n',
        'Unexpected block closer',
        id='stray closer',
    ),
))
def test_parse_invalid_spec(source: str, expect_message: str) -> None:
    """Reject sources that do not follow the grammar."""
    with pytest.raises(SpecSyntaxError, match=expect_message):
        parse_spec(source)


def test_syntax_error_location() -> None:
    """Point syntax errors at the offending line."""
    with pytest.raises(SpecSyntaxError) as error:
        parse_spec('---- a ----\nx\n  ::\n', filename='test_closer.hmr')

    assert error.value.context is not None
    assert error.value.context['line_num'] == 2
    assert error.value.context['column_num'] == 2
    assert 'in "test_closer.hmr", line 3, column 3' in str(error.value)
