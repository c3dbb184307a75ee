"""Tests for the console monitor and the console commands."""

import asyncio
import logging
from re import compile as regexp
from typing import TYPE_CHECKING, Any

import pytest

from pytest_hmr import cons, debug, init, page, spec
from pytest_hmr.config import HmrSettings
from pytest_hmr.core import TestRunner
from pytest_hmr.core.monitor import format_message, is_ignored
from pytest_hmr.errors import ConsoleError, PageError

from tests.examples.environment import FakeConsoleMessage

if TYPE_CHECKING:
    from collections.abc import Generator

    from pytest_hmr.core import CommandRegistry

    from tests.examples.environment import FakeEnvironment, FakePage

COUNTER_SPEC = '''
---- App.svelte ----
::0 <h1>zero</h1>
::1 <h1>one</h1>
****
::0 <h1>zero</h1>
::1 <h1>one</h1>
'''


def counter_script(*commands: Any) -> 'Generator[Any, Any, None]':  # noqa: ANN401
    """Script updating the counter once, after some init commands."""
    yield from commands
    yield spec(COUNTER_SPEC)
    yield init(0)


def emit_on_write(environment: 'FakeEnvironment', event: str, *args: Any) -> None:  # noqa: ANN401
    """Emit a page event each time files are written."""
    def on_write(page: 'FakePage', files: Any) -> None:  # noqa: ANN401, ARG001
        page.emit(event, *args)

    environment.on_write = on_write


@pytest.mark.parametrize('policy, text, expected', (
    pytest.param(True, 'boom', True, id='all'),
    pytest.param(False, 'boom', False, id='none'),
    pytest.param(['boom'], 'boom', True, id='exact text'),
    pytest.param(['boom'], 'boom!', False, id='exact text mismatch'),
    pytest.param([regexp('^bo+m')], 'booom!', True, id='regex'),
))
def test_is_ignored(policy: Any, text: str, expected: bool) -> None:  # noqa: ANN401
    """Match message texts against ignore policies."""
    assert is_ignored(policy, text) is expected


def test_format_message() -> None:
    """Display console messages with a short type."""
    assert format_message(FakeConsoleMessage('error', 'boom')) == 'ERR boom'
    assert format_message(FakeConsoleMessage('warning', 'careful')) == 'WRN careful'
    assert format_message(FakeConsoleMessage('log', 'hello')) == 'LOG hello'


def test_console_error(runner: TestRunner, environment: 'FakeEnvironment') -> None:
    """Fail on console errors, even when the assertions pass."""
    emit_on_write(environment, 'console', FakeConsoleMessage('error', 'boom'))

    with pytest.raises(ConsoleError) as error:
        runner(counter_script())

    assert 'Unexpected console error' in str(error.value)
    assert 'ERR boom' in str(error.value)


def test_console_errors_burst(runner: TestRunner, environment: 'FakeEnvironment') -> None:
    """Report all the console messages of a burst."""
    def on_write(page: 'FakePage', files: Any) -> None:  # noqa: ANN401, ARG001
        page.console('error', 'first')
        page.console('warning', 'second')

    environment.on_write = on_write

    with pytest.raises(ConsoleError) as error:
        runner(counter_script())

    assert 'ERR first\nWRN second' in str(error.value)


def test_console_warning(runner: TestRunner, environment: 'FakeEnvironment') -> None:
    """Fail on console warnings."""
    emit_on_write(environment, 'console', FakeConsoleMessage('warning', 'careful'))

    with pytest.raises(ConsoleError, match='Unexpected console warning'):
        runner(counter_script())


@pytest.mark.parametrize('command', (
    pytest.param(cons.ignore_errors(), id='all'),
    pytest.param(cons.ignore_errors('boom'), id='exact text'),
    pytest.param(cons.ignore_errors(regexp('^bo')), id='regex'),
))
def test_ignore_console_errors(runner: TestRunner, environment: 'FakeEnvironment',
                               command: Any) -> None:  # noqa: ANN401
    """Ignore the console errors matched by the policy."""
    emit_on_write(environment, 'console', FakeConsoleMessage('error', 'boom'))

    state = runner(counter_script(command))

    assert state.console.ignore_errors


def test_ignore_console_policy_updates(runner: TestRunner) -> None:
    """Extend ignore lists and replace them with flags."""
    policies = []

    def script() -> 'Generator[Any, Any, None]':
        state = yield debug()
        yield cons.ignore_warnings('a')
        yield cons.ignore_warnings(regexp('b'))
        policies.append(list(state.console.ignore_warnings))
        yield cons.ignore_warnings(False)
        policies.append(state.console.ignore_warnings)
        yield cons.ignore_warnings('c')
        policies.append(state.console.ignore_warnings)

    runner(script)

    assert len(policies[0]) == 2
    assert policies[0][0] == 'a'
    assert policies[1:] == [False, ['c']]


def test_page_error(runner: TestRunner, environment: 'FakeEnvironment') -> None:
    """Fail on uncaught page errors."""
    emit_on_write(environment, 'pageerror', RuntimeError('oops'))

    with pytest.raises(PageError, match='oops'):
        runner(counter_script())


def test_console_echo(environment: 'FakeEnvironment', registry: 'CommandRegistry',
                      caplog: pytest.LogCaptureFixture) -> None:
    """Log the console messages when the echo is enabled."""
    settings = HmrSettings(console=True, console_buffer_delay=0.001)
    runner = TestRunner(environment, settings=settings, registry=registry)
    emit_on_write(environment, 'console', FakeConsoleMessage('log', 'hello'))

    with caplog.at_level(logging.INFO, logger='pytest_hmr'):
        runner(counter_script())

    assert '[console:LOG] hello' in caplog.text


def test_console_wait(runner: TestRunner) -> None:
    """Wait for a matching console message."""
    def script() -> 'Generator[Any, Any, None]':
        yield init({'App.svelte': '<p>x</p>'})
        p = yield page()
        loop = asyncio.get_running_loop()
        loop.call_soon(p.console, 'log', 'other')
        loop.call_soon(p.console, 'log', 'ready')
        yield cons.wait({'type': 'log', 'text': regexp('^rea')})

    runner(script)


def test_console_wait_timeout(runner: TestRunner) -> None:
    """Fail when no console message matches before the timeout."""
    def script() -> 'Generator[Any, Any, None]':
        yield init({'App.svelte': '<p>x</p>'})
        yield cons.wait(0.01, 'never')

    with pytest.raises(TimeoutError, match='Console message not found before timeout'):
        runner(script)
