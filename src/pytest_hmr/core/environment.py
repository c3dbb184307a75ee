"""Contracts of the live environment and of the page handle.

The bundler or dev-server adapter, its virtual filesystem and the
browser driver are external collaborators. The interpreter only talks
to them through these protocols. The page protocol follows the
Playwright async API.
"""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ConsoleMessage(Protocol):
    """A console message emitted by the page."""

    @property
    def type(self) -> str: ...

    @property
    def text(self) -> str: ...


@runtime_checkable
class Page(Protocol):
    """Handle of the live page."""

    def on(self, event: str, handler: Callable[..., Any]) -> Any: ...  # noqa: ANN401

    def once(self, event: str, handler: Callable[..., Any]) -> Any: ...  # noqa: ANN401

    def remove_listener(self, event: str, handler: Callable[..., Any]) -> Any: ...  # noqa: ANN401

    async def query_selector(self, selector: str) -> Any: ...  # noqa: ANN401

    async def eval_on_selector(self, selector: str, expression: str) -> Any: ...  # noqa: ANN401


@runtime_checkable
class Environment(Protocol):
    """Live-reloading application under test."""

    async def reset(self, files: Mapping[str, Any]) -> None:
        """Reset the sources to their initial state.

        Args:
            files: Initial files by path.
        """
        ...

    async def write_and_settle(self, page: Page, files: Mapping[str, str | None]) -> None:
        """Write files and wait for the application to settle.

        Returns once the live environment signals the update complete,
        or raises if it reports a failure (for example a compile error).

        Args:
            page: Live page.
            files: Contents by path, `None` removing the file.
        """
        ...

    async def load_page(self, url: str,
                        on_ready: Callable[[Page], Awaitable[None]],
                        before_goto: Callable[[Page], Awaitable[None]] | None = None) -> None:
        """Open a page and run the test against it.

        Args:
            url: Page URL, relative to the application root.
            on_ready: Called with the page once loaded; the page lives
                until it returns.
            before_goto: Called with the page before the navigation.
        """
        ...
