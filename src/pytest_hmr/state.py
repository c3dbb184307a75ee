"""Mutable state of one test invocation.

The state is threaded explicitly through the interpreter and all the
command handlers. It is owned by the in-flight test and dropped at its
completion.
"""

from typing import TYPE_CHECKING, Any

from pytest_hmr.errors import FailError

if TYPE_CHECKING:
    from asyncio import Future
    from collections import deque
    from collections.abc import Awaitable, Callable

    from pytest_hmr.config import HmrSettings
    from pytest_hmr.core.environment import Environment, Page
    from pytest_hmr.core.monitor import ConsoleMonitor
    from pytest_hmr.core.registry import CommandRegistry
    from pytest_hmr.schema import Expectation, SubHandler
    from pytest_hmr.schema.commands import IgnorePolicy

    type CommandProcessor = Callable[[Any], Awaitable[Any]]
    type PageErrorHandler = Callable[[BaseException], bool]
    type PostHook = Callable[[], Any]


class ConsolePolicy:
    """Console messages ignored by the console monitor.

    Each policy is `True` (ignore all), `False` (ignore none) or a list
    of exact texts and regular expressions.
    """

    def __init__(self) -> None:
        self.ignore_warnings: IgnorePolicy = []
        self.ignore_errors: IgnorePolicy = []

    def __repr__(self) -> str:
        return (
            f'ConsolePolicy(ignore_warnings={self.ignore_warnings!r}, '
            f'ignore_errors={self.ignore_errors!r})'
        )


class TestState:
    """State of a test, shared by the interpreter and the handlers."""

    __test__ = False

    def __init__(self, environment: 'Environment', *,
                 settings: 'HmrSettings',
                 registry: 'CommandRegistry') -> None:
        """Initialize an empty state.

        Args:
            environment: Live environment collaborator.
            settings: Runtime settings.
            registry: Command handlers registry.
        """
        self.environment = environment
        self.settings = settings
        self.registry = registry

        self.page_url = settings.page_url
        #: Name of the spec source, for error reporting.
        self.filename: str | None = None

        #: Content templates by path.
        self.templates: dict[str, Callable[..., Any]] = {}
        #: File content table: path -> label -> content.
        self.specs: dict[str, dict[str, str]] = {}
        #: Initial files handed to the environment reset.
        self.inits: dict[str, Any] = {}
        #: Registered expectations, in registration order.
        self.expects: dict[str, Expectation] = {}
        #: Pending expectations, materialized at the start of the run phase.
        self.remaining_expects: deque[tuple[str, Expectation]] | None = None

        self.page: Page | None = None
        self.console = ConsolePolicy()
        self.before_load: SubHandler | None = None

        self.started = False
        self.init_spec_label: str | None = None

        self.process_command: CommandProcessor | None = None
        self.monitor: ConsoleMonitor | None = None

        self.page_error_handlers: list[PageErrorHandler] = []
        self.post_hooks: list[PostHook] = []
        #: Data of the state effects, by effect.
        self.extras: dict[str, Any] = {}

        self._fail: Future[None] | None = None

    def __repr__(self) -> str:
        return (
            f'TestState(started={self.started}, specs={list(self.specs)}, '
            f'expects={list(self.expects)}, page_url={self.page_url!r})'
        )

    def bind_fail(self, future: 'Future[None]') -> None:
        """Attach the future raced against the command flow."""
        self._fail = future

    def fail(self, error: str | BaseException) -> BaseException:
        """Abort the running test.

        Args:
            error: Failure message or exception.

        Returns:
            The failure, so that callers may also raise it.

        Raises:
            FailError: If the test is not running against a page yet.
        """
        if isinstance(error, str):
            error = FailError(error)

        if self._fail is None:
            raise error

        if not self._fail.done():
            self._fail.set_exception(error)

        return error

    def add_page_error_handler(self, handler: 'PageErrorHandler') -> None:
        """Register a handler that may claim uncaught page errors."""
        self.page_error_handlers.append(handler)

    def post(self, hook: 'PostHook') -> None:
        """Register a hook run once all expectations are flushed."""
        self.post_hooks.append(hook)
