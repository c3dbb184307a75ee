"""Console monitor.

For the lifetime of one page session the monitor listens to the console
messages and the uncaught errors of the page. Unexpected output rejects
a future that the interpreter races against the command flow, so that a
test fails as soon as the page misbehaves, even while a command is
still pending.
"""

import asyncio
import logging
from re import Pattern
from typing import TYPE_CHECKING, Any

from pytest_hmr.errors import ConsoleError, PageError, UsageError

if TYPE_CHECKING:
    from pytest_hmr.core.environment import ConsoleMessage, Page
    from pytest_hmr.schema.commands import IgnorePolicy
    from pytest_hmr.state import TestState

logger = logging.getLogger(__name__)

CONSOLE_ERROR = 'Unexpected console error: '
CONSOLE_WARNING = 'Unexpected console warning: '


def format_type(kind: str) -> str:
    """Short display name of a console message type."""
    if kind == 'error':
        return 'ERR'
    if kind == 'warning':
        return 'WRN'
    return kind[:3].upper()


def format_message(message: 'ConsoleMessage') -> str:
    """Display line of a console message."""
    return f'{format_type(message.type)} {message.text}'


def is_ignored(policy: 'IgnorePolicy', text: str) -> bool:
    """Whether a message text is matched by an ignore policy.

    Args:
        policy: `True` (all), `False` (none), or a list of exact texts
            and regular expressions.
        text: Message text.

    Returns:
        True if the message must be ignored.
    """
    if isinstance(policy, bool):
        return policy

    for matcher in policy:
        if isinstance(matcher, Pattern):
            if matcher.search(text):
                return True
        elif matcher == text:
            return True

    return False


class ConsoleMonitor:
    """Watch the console of a page and fail the test on unexpected output."""

    def __init__(self, state: 'TestState') -> None:
        """Initialize the monitor.

        Must be called from a running event loop.

        Args:
            state: State of the test, providing the console policy, the
                page error handlers and the settings.
        """
        self.state = state
        self.loop = asyncio.get_running_loop()
        self.future: asyncio.Future[None] = self.loop.create_future()

        self.page: Page | None = None
        self.messages: list[ConsoleMessage] = []
        self.buffering = False
        self.rejected = False

    def attach(self, page: 'Page') -> None:
        """Start listening to a page.

        Raises:
            UsageError: If the monitor already listens to a page.
        """
        if self.page is not None:
            raise UsageError('Console monitor already attached to a page')

        self.page = page
        page.on('console', self.on_console)
        page.on('pageerror', self.on_page_error)
        page.on('error', self.on_error)

    def detach(self) -> None:
        """Stop listening to the page."""
        if self.page is None:
            return

        self.page.remove_listener('console', self.on_console)
        self.page.remove_listener('pageerror', self.on_page_error)
        self.page.remove_listener('error', self.on_error)

    def on_console(self, message: 'ConsoleMessage') -> None:
        """Handle a console message."""
        if self.state.settings.console:
            logger.info('[console:%s] %s', format_type(message.type), message.text)

        if self.rejected:
            return

        if self.buffering:
            self.messages.append(message)
            return

        policy = self.state.console
        if message.type == 'error' and not is_ignored(policy.ignore_errors, message.text):
            self.buffer_and_reject(message, CONSOLE_ERROR)
        elif message.type == 'warning' and not is_ignored(policy.ignore_warnings, message.text):
            self.buffer_and_reject(message, CONSOLE_WARNING)

    def on_page_error(self, error: Any) -> None:  # noqa: ANN401
        """Handle an uncaught exception of the page."""
        for handler in self.state.page_error_handlers:
            if handler(error):
                logger.debug('page error claimed by %r: %s', handler, error)
                return

        self.reject(PageError(str(error)))

    def on_error(self, error: Any) -> None:  # noqa: ANN401
        """Handle a generic page error."""
        if isinstance(error, Exception):
            self.reject(error)
        else:
            self.reject(PageError(f'Page error: {error}'))

    def buffer_and_reject(self, message: 'ConsoleMessage', prefix: str) -> None:
        """Collect the messages of a burst, then reject."""
        self.messages.append(message)
        self.buffering = True
        self.loop.call_later(
            self.state.settings.console_buffer_delay,
            self.flush,
            prefix,
        )

    def flush(self, prefix: str) -> None:
        """Reject with all the buffered messages."""
        summary = '\n'.join(format_message(message) for message in self.messages)

        self.reject(ConsoleError(f'{prefix}\n\n{summary}'))

    def reject(self, error: BaseException) -> None:
        """Fail the monitor."""
        logger.debug('console monitor rejected: %s', error)

        self.rejected = True
        self.detach()

        if not self.future.done():
            self.future.set_exception(error)

    def close(self) -> None:
        """Resolve the monitor at the end of the page session.

        A monitor that is collecting a burst of messages rejects once
        the burst is over instead.
        """
        if self.rejected or self.buffering:
            return

        self.detach()

        if not self.future.done():
            self.future.set_result(None)
