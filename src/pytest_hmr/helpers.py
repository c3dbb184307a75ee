"""State effects for common page interactions and checks.

Helpers return callables receiving the test state. Yielded from a test
script, they run against the live page:

    yield expect_page_load()
    yield change(1)
    yield click('button')

The page expectations register a check that runs once all the pending
expectations are flushed. Calling them again resets their counters.
"""

from re import Pattern
from re import compile as regexp
from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin

from pytest_hmr.errors import UsageError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from pytest_hmr.state import TestState

    type Effect = Callable[[TestState], Any]

PAGE_ERRORS = 'expect_page_errors'
PAGE_LOADS = 'expect_page_loads'

_BASE_URL_PATTERN = regexp(r'^\w*://[^/]*')


class _Counter:
    """Expected and observed counts of a page event."""

    def __init__(self, expected: Any, limit: int | None, message: str | None) -> None:  # noqa: ANN401
        self.expected = expected
        self.limit = limit
        self.message = message
        self.current = 0
        self.total = 0

    def reset(self, expected: Any, limit: int | None, message: str | None) -> None:  # noqa: ANN401
        self.expected = expected
        self.limit = limit
        self.message = message
        self.current = 0


def _matches(pattern: Any, error: BaseException) -> bool:  # noqa: ANN401
    if isinstance(pattern, Pattern):
        return pattern.search(str(error)) is not None

    if isinstance(pattern, str):
        return pattern in str(error)

    raise UsageError(f'Invalid pattern: {pattern!r}')


def _register_page_errors(state: 'TestState', me: _Counter) -> None:
    def on_page_error(error: BaseException) -> bool:
        me.total += 1
        me.current += 1
        if me.limit is not None:
            me.limit -= 1
            if me.limit < 0:
                return False
        if me.expected is True:
            return True
        if me.expected is False:
            return False
        return _matches(me.expected, error)

    def check() -> None:
        if me.expected is False:
            return

        if me.expected is True and me.current < 1:
            raise state.fail(me.message or f"Expected page errors that didn't happen (total: {me.total})")

        if me.limit is not None and me.limit > 0:
            raise state.fail(
                me.message
                or f'Expected {me.limit} page errors, but there was {me.current} (total: {me.total})',
            )

    state.add_page_error_handler(on_page_error)
    state.post(check)


def _expect_page_errors(pattern: Any, limit: int | None, message: str | None) -> 'Effect':  # noqa: ANN401
    def effect(state: 'TestState') -> None:
        if (me := state.extras.get(PAGE_ERRORS)) is not None:
            me.reset(pattern, limit, message)
            return

        me = state.extras[PAGE_ERRORS] = _Counter(pattern, limit, message)
        _register_page_errors(state, me)

    return effect


def expect_page_errors(message: str | None = None) -> 'Effect':
    """Expect at least one uncaught page error, and claim them all."""
    return _expect_page_errors(True, None, message)


def expect_page_error(pattern: str | Pattern[str], message: str | None = None) -> 'Effect':
    """Expect exactly one uncaught page error matching a pattern.

    Args:
        pattern: Substring or regex searched in the error.
        message: Custom failure message.
    """
    return _expect_page_errors(pattern, 1, message)


def expect_no_page_error(message: str | None = None) -> 'Effect':
    """Stop claiming uncaught page errors."""
    return _expect_page_errors(False, None, message)


def _register_page_loads(state: 'TestState', me: _Counter) -> None:
    page = state.page

    def on_load(*args: Any) -> None:  # noqa: ANN401, ARG001
        me.total += 1
        me.current += 1
        if me.expected is True:
            return
        if me.expected is False or me.expected == 0:
            state.fail(me.message or f'Unexpected page load (total: {me.total})')
        elif me.current > me.expected:
            state.fail(
                me.message
                or f"Expected {me.expected} page loads, but we're at {me.current} (total: {me.total})",
            )

    def check() -> None:
        page.remove_listener('load', on_load)

        if me.expected is False or me.expected == 0:
            return

        if me.expected is True:
            if me.current < 1:
                raise state.fail(me.message or f"Expected more page loads that didn't happen (total: {me.total})")
        elif me.expected != me.current:
            raise state.fail(
                me.message
                or f'Expected {me.expected} page loads, but there was {me.current} (total: {me.total})',
            )

    page.on('load', on_load)
    state.post(check)


def expect_page_loads(expected: bool | int = True, message: str | None = None) -> 'Effect':
    """Expect page loads until the end of the test.

    Args:
        expected: `True` for at least one, `False` or `0` for none, or
            the exact number of loads.
        message: Custom failure message.
    """
    def effect(state: 'TestState') -> None:
        if (me := state.extras.get(PAGE_LOADS)) is not None:
            me.reset(expected, None, message)
            return

        me = state.extras[PAGE_LOADS] = _Counter(expected, None, message)
        _register_page_loads(state, me)

    return effect


def expect_page_load(message: str | None = None) -> 'Effect':
    """Expect exactly one page load."""
    return expect_page_loads(1, message)


def expect_no_page_load(message: str | None = None) -> 'Effect':
    """Expect no page load."""
    return expect_page_loads(False, message)


def click(selector: str) -> 'Callable[[TestState], Awaitable[None]]':
    """Click the first element matching a selector."""
    def effect(state: 'TestState') -> 'Awaitable[None]':
        return state.page.click(selector)

    return effect


def click_button(selector: str = 'button') -> 'Callable[[TestState], Awaitable[None]]':
    return click(selector)


def click_link(href: str | None = None) -> 'Callable[[TestState], Awaitable[None]]':
    return click(f'a[href="{href}"]' if href else 'a')


def goto(url: str) -> 'Callable[[TestState], Awaitable[None]]':
    """Navigate to a URL.

    A URL starting with `/` is resolved against the origin of the
    current page, any other against the current page URL.
    """
    async def effect(state: 'TestState') -> None:
        page_url = state.page.url
        if url.startswith('/') and (match := _BASE_URL_PATTERN.match(page_url)):
            target = match.group(0) + url
        else:
            target = urljoin(page_url, url)

        await state.page.goto(target)

    return effect


def goto_state(url: str) -> 'Callable[[TestState], Awaitable[None]]':
    """Push a history state without reloading the page."""
    def effect(state: 'TestState') -> 'Awaitable[None]':
        return state.page.evaluate('url => window.history.pushState({}, "", url)', url)

    return effect
