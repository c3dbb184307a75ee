"""Tests for the page interaction and page expectation helpers."""

from re import compile as regexp
from typing import TYPE_CHECKING, Any

import pytest

from pytest_hmr import (
    click,
    click_button,
    click_link,
    expect_no_page_error,
    expect_no_page_load,
    expect_page_error,
    expect_page_errors,
    expect_page_load,
    expect_page_loads,
    goto,
    goto_state,
    init,
    page,
)
from pytest_hmr.errors import FailError, PageError

if TYPE_CHECKING:
    from collections.abc import Generator

    from pytest_hmr.core import TestRunner

    from tests.examples.environment import FakeEnvironment


def page_script(*commands: Any) -> 'Generator[Any, Any, None]':  # noqa: ANN401
    """Script running some commands against the loaded page."""
    yield init({'App.svelte': '<p>x</p>'})
    yield page.url()
    yield from commands


def raise_page_error(message: str) -> 'Any':
    """Effect emitting an uncaught page error."""
    def effect(state: Any) -> None:  # noqa: ANN401
        state.page.emit('pageerror', RuntimeError(message))

    return effect


def reload_page(state: Any) -> 'Any':  # noqa: ANN401
    """Effect reloading the page."""
    return state.page.goto(state.page.url)


def test_clicks(runner: 'TestRunner', environment: 'FakeEnvironment') -> None:
    """Click elements by selector."""
    runner(page_script(click('#counter'), click_button(), click_link('/about'), click_link()))

    assert environment.page.clicks == ['#counter', 'button', 'a[href="/about"]', 'a']


@pytest.mark.parametrize('url, expect_url', (
    pytest.param('/about', 'http://localhost:8080/about', id='root relative'),
    pytest.param('about', 'http://localhost:8080/about', id='relative'),
    pytest.param('http://example.com/', 'http://example.com/', id='absolute'),
))
def test_goto(runner: 'TestRunner', environment: 'FakeEnvironment',
              url: str, expect_url: str) -> None:
    """Resolve the target URL against the current page."""
    runner(page_script(goto(url)))

    assert environment.page.visits == [expect_url]


def test_goto_state(runner: 'TestRunner', environment: 'FakeEnvironment') -> None:
    """Push a history state without loading the page."""
    runner(page_script(goto_state('/other')))

    assert environment.page.url == '/other'
    assert environment.page.visits == []


def test_expect_page_errors(runner: 'TestRunner') -> None:
    """Claim all the uncaught page errors."""
    runner(page_script(
        expect_page_errors(),
        raise_page_error('first'),
        raise_page_error('second'),
    ))


def test_expect_page_errors_missing(runner: 'TestRunner') -> None:
    """Fail when the expected page errors did not happen."""
    with pytest.raises(FailError, match="Expected page errors that didn't happen"):
        runner(page_script(expect_page_errors()))


@pytest.mark.parametrize('pattern', (
    pytest.param('boom', id='substring'),
    pytest.param(regexp('^bo+m$'), id='regex'),
))
def test_expect_page_error(runner: 'TestRunner', pattern: Any) -> None:  # noqa: ANN401
    """Claim one page error matching the pattern."""
    runner(page_script(expect_page_error(pattern), raise_page_error('boom')))


def test_expect_page_error_missing(runner: 'TestRunner') -> None:
    """Fail when the expected page error did not happen."""
    with pytest.raises(FailError, match='Expected 1 page errors, but there was 0'):
        runner(page_script(expect_page_error('boom')))


def test_expect_page_error_too_many(runner: 'TestRunner') -> None:
    """Fail on page errors beyond the expected one."""
    with pytest.raises(PageError, match='again'):
        runner(page_script(
            expect_page_error('boom'),
            raise_page_error('boom'),
            raise_page_error('boom again'),
        ))


def test_expect_no_page_error(runner: 'TestRunner') -> None:
    """Stop claiming page errors."""
    with pytest.raises(PageError, match='boom'):
        runner(page_script(
            expect_page_errors(),
            raise_page_error('claimed'),
            expect_no_page_error(),
            raise_page_error('boom'),
        ))


def test_expect_page_load(runner: 'TestRunner') -> None:
    """Count the page loads."""
    runner(page_script(expect_page_load(), reload_page))


@pytest.mark.parametrize('commands, expect_message', (
    pytest.param(
        (expect_page_load(),),
        'Expected 1 page loads, but there was 0',
        id='missing load',
    ),
    pytest.param(
        (expect_page_load(), reload_page, reload_page),
        r'Expected 1 page loads, but .* 2',
        id='too many loads',
    ),
    pytest.param(
        (expect_no_page_load(), reload_page),
        'Unexpected page load',
        id='unexpected load',
    ),
    pytest.param(
        (expect_page_loads(),),
        "Expected more page loads that didn't happen",
        id='no load at all',
    ),
    pytest.param(
        (expect_page_loads(2, 'two reloads'), reload_page),
        'two reloads',
        id='custom message',
    ),
))
def test_expect_page_loads_failure(runner: 'TestRunner', commands: tuple,
                                   expect_message: str) -> None:
    """Fail when the page loads do not match the expected count."""
    with pytest.raises(FailError, match=expect_message):
        runner(page_script(*commands))
