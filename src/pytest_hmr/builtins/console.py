"""Built-in commands configuring and observing the page console."""

import asyncio
import logging
from collections.abc import Mapping
from re import Pattern
from typing import TYPE_CHECKING, Any

from pytest_hmr.extensions import CommandHandler

if TYPE_CHECKING:
    from pytest_hmr.core.environment import ConsoleMessage
    from pytest_hmr.schema import ConsoleIgnoreCommand, ConsoleWaitCommand
    from pytest_hmr.state import TestState

logger = logging.getLogger(__name__)


def is_match(kind: str, text: str, matcher: Any) -> bool:  # noqa: ANN401
    """Whether a console message is matched.

    Args:
        kind: Message type.
        text: Message text.
        matcher: Exact text, regex, or mapping with optional `type` and
            `text` keys.

    Returns:
        True if the message matches.
    """
    if isinstance(matcher, str):
        return matcher == text

    if isinstance(matcher, Pattern):
        return matcher.search(text) is not None

    if isinstance(matcher, Mapping):
        if (expected := matcher.get('type')) and expected != kind:
            return False
        if (expected := matcher.get('text')) and not is_match(kind, text, expected):
            return False
        return True

    return False


def _ignore(state: 'TestState', command: 'ConsoleIgnoreCommand') -> None:
    """Update an ignore policy: replace it with a flag or extend its list."""
    name = command.type.removeprefix('cons.')

    if isinstance(command.ignore, bool):
        setattr(state.console, name, command.ignore)
    else:
        current = getattr(state.console, name)
        if not isinstance(current, list):
            current = []
        setattr(state.console, name, [*current, *command.ignore])

    logger.debug('console policy: %r', state.console)


async def _run_wait(state: 'TestState', command: 'ConsoleWaitCommand') -> None:
    """Wait for a console message matched by any matcher.

    Raises:
        TimeoutError: If no message matched before the timeout.
    """
    page = state.page
    found = asyncio.get_running_loop().create_future()

    def on_console(message: 'ConsoleMessage') -> None:
        logger.debug('wait: seen [%s] %s', message.type, message.text)
        if any(is_match(message.type, message.text, matcher) for matcher in command.matchers):
            if not found.done():
                found.set_result(None)
        else:
            page.once('console', on_console)

    page.once('console', on_console)
    try:
        await asyncio.wait_for(found, command.timeout)

    except TimeoutError:
        raise TimeoutError('Console message not found before timeout') from None

    finally:
        page.remove_listener('console', on_console)


ignore_warnings = CommandHandler(name='cons.ignore_warnings', init=_ignore, run=_ignore)
ignore_errors = CommandHandler(name='cons.ignore_errors', init=_ignore, run=_ignore)
wait = CommandHandler(name='cons.wait', run=_run_wait)
