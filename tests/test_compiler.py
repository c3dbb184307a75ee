"""Tests for the spec compiler."""

from re import compile as regexp
from typing import TYPE_CHECKING

import pytest

from pytest_hmr.errors import SpecCompileError
from pytest_hmr.dsl import apply_regexes, compile_file, compile_spec, lines_to_html, spec_title
from pytest_hmr.values import AnchoredValue

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

APP_SPEC = '''
# updates the heading
---- App.svelte ----
<h1>
  ::0 zero
  ::1 one
</h1>
---- main.js ----
import App from './App.svelte'
****
<h1>
  ::0 zero
  ::1 one
</h1>
'''


def sub() -> 'Generator[Any, Any, None]':
    """Sub step that does nothing."""
    yield None


def other_sub() -> 'Generator[Any, Any, None]':
    """Another sub step that does nothing."""
    yield None


def hook() -> None:
    """Plain function hook."""


def test_compile_full_spec() -> None:
    """Compile file variants and expectations in order of appearance."""
    compiled = compile_spec(APP_SPEC, full=True)

    assert compiled.title == 'updates the heading'
    assert compiled.files == {
        'App.svelte': {
            '0': '<h1>\nzero\n</h1>',
            '1': '<h1>\none\n</h1>',
        },
        'main.js': {
            '*': "import App from './App.svelte'",
        },
    }

    assert list(compiled.expects) == ['0', '1']
    assert [step.html for step in compiled.expects['0'].steps] == ['<h1>zero</h1>']
    assert [step.html for step in compiled.expects['1'].steps] == ['<h1>one</h1>']


def test_compile_is_pure() -> None:
    """Produce identical results for identical inputs."""
    assert compile_spec(APP_SPEC, full=True) == compile_spec(APP_SPEC, full=True)


def test_compile_full_spec_without_assertions() -> None:
    """Reject full specs without expectations."""
    with pytest.raises(SpecCompileError, match="Spec 'empty' has no assertions"):
        compile_spec('# empty\n---- a.js ----\nx\n', full=True)


def test_spec_title() -> None:
    """Read the title without compiling the spec."""
    assert spec_title(APP_SPEC) == 'updates the heading'


def test_compile_file_mapping_content() -> None:
    """Compile the conditional content of a single file."""
    content = '''
        Hello,
        ::0 World
        ::1 HMR
    '''

    assert compile_file(content) == {
        '0': 'Hello,\nWorld\n',
        '1': 'Hello,\nHMR',
    }
    assert compile_file('plain') == {'*': 'plain'}
    assert compile_file('') == {}


def test_compile_block_with_sub() -> None:
    """Split a block into html and sub steps at each sub."""
    compiled = compile_spec([
        '****\n::0::\n  <h1>zero</h1>\n  ', sub, '\n  <h1>after</h1>\n::\n',
    ])

    steps = compiled.expects['0'].steps
    assert [step.kind for step in steps] == ['html', 'sub', 'html']
    assert steps[0].html == '<h1>zero</h1>'
    assert steps[1].sub is sub
    assert steps[2].html == '<h1>after</h1>'


def test_compile_block_lines_around_steps() -> None:
    """Surround each html step with the plain lines of the label."""
    compiled = compile_spec([
        '****\n<main>\n::0::\n  <p>a</p>\n  ', sub, '\n  <p>b</p>\n::\n</main>\n',
    ])

    steps = compiled.expects['0'].steps
    assert [step.html for step in steps if step.kind == 'html'] == [
        '<main><p>a</p></main>',
        '<main><p>b</p></main>',
    ]


def test_compile_regex_tokens() -> None:
    """Splice regexes into html steps as matcher tokens."""
    number = regexp(r'\d+')
    compiled = compile_spec(['****\n::0 <p>', number, '</p>\n'])

    assert compiled.expects['0'].steps[0].html == ['<p>', number, '</p>']


def test_compile_root_hooks() -> None:
    """Register plain functions of single-line conditions as hooks."""
    def after() -> None:
        return None

    compiled = compile_spec(['****\n::0 <p>x</p>', hook, after, '\n'])

    expectation = compiled.expects['0']
    assert expectation.before is hook
    assert expectation.after is after
    assert expectation.steps[0].html == '<p>x</p>'


def test_compile_block_title() -> None:
    """Use the block title as the expectation title."""
    compiled = compile_spec('****\n::0:: initial render\n  <p>x</p>\n::\n')

    assert compiled.expects['0'].title == 'initial render'
    assert compiled.expects['0'].steps[0].html == '<p>x</p>'


@pytest.mark.parametrize('parts, expect_message', (
    pytest.param(
        ['****\n<p>', sub, '</p>\n::0 a\n'],
        'Sub handler must be inside an assertion condition',
        id='sub on unconditional line',
    ),
    pytest.param(
        ['---- a.js ----\n', sub, 'x\n****\n::0 a\n'],
        'Sub handler must be inside an assertion condition',
        id='sub in file section',
    ),
    pytest.param(
        ['---- a.js ----\nx', sub, '\n'],
        'Sub handler must be inside an assertion condition',
        id='sub without expectations',
    ),
    pytest.param(
        ['****\n::0 <p>x</p>', hook, hook, hook, '\n'],
        r'Only two root level hooks are allowed \(before and after\)',
        id='too many hooks',
    ),
    pytest.param(
        ['****\n::0::\n  ', sub, '\n::\n::0::\n  ', other_sub, '\n::\n'],
        'Only a single condition block can have sub steps',
        id='too many blocks',
    ),
    pytest.param(
        ['****\n::0::\n  <p>x</p>', hook, '\n::\n'],
        'Plain functions are not allowed in a condition block',
        id='function in block',
    ),
    pytest.param(
        ['****\n::0 <p>a</p>\n::0::\n  ', sub, '\n::\n'],
        "Condition '0' has HTML lines but no HTML step",
        id='ignored html lines',
    ),
))
def test_compile_invalid_spec(parts: list, expect_message: str) -> None:
    """Reject structural violations."""
    with pytest.raises(SpecCompileError, match=expect_message):
        compile_spec(parts)


def test_compile_error_location() -> None:
    """Point compile errors at the misplaced value."""
    with pytest.raises(SpecCompileError) as error:
        compile_spec(['****\n<p>', sub, '</p>\n::0 a\n'])

    assert error.value.context is not None
    assert error.value.context['line_num'] == 1
    assert error.value.context['column_num'] == 3


@pytest.mark.parametrize('text, start, expect_tokens', (
    pytest.param('<p></p>', 10, ['<p>', 'R', '</p>'], id='inside'),
    pytest.param('<p></p>', 15, ['R', '<p></p>'], id='before text'),
    pytest.param('  <p>', 11, ['R', '<p>'], id='whitespace fragment dropped'),
))
def test_apply_regexes(text: str, start: int, expect_tokens: list) -> None:
    """Cut the text at the offset of each regex."""
    regex = regexp('R')
    value = AnchoredValue(index=13, value=regex)

    matchers, rest = apply_regexes([value], text, start)

    assert rest == []
    assert [token.pattern if token is regex else token for token in matchers] == expect_tokens


def test_apply_regexes_keeps_callables() -> None:
    """Return the values that are not regexes."""
    value = AnchoredValue(index=3, value=sub)

    matchers, rest = apply_regexes([value], '<p></p>', 0)

    assert matchers == ['<p></p>']
    assert rest == [value]


def test_lines_to_html() -> None:
    """Join lines into a normalized string or a list of tokens."""
    regex = regexp('x')

    assert lines_to_html([['<p>\n'], ['  a  ', '\n</p>']]) == '<p>a</p>'
    assert lines_to_html([['<p> '], [regex, ' </p>']]) == ['<p>', regex, '</p>']
