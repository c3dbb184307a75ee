"""Command handlers registry and plugin loading infrastructure.

This module defines the registry resolving a command `type` to its
handlers, and the discovery of command plugins exposed via Python entry
points.

A broken plugin is reported as a warning and skipped, unless strict
mode turns the report into an error.
"""

import logging
from typing import TYPE_CHECKING
from warnings import warn

from pydantic import ValidationError

from pytest_hmr.errors import PluginError, PluginWarning, UsageError
from pytest_hmr.extensions import Plugin

if TYPE_CHECKING:
    from collections.abc import Iterable
    from importlib.metadata import EntryPoint

    from pytest_hmr.extensions import CommandHandler

logger = logging.getLogger(__name__)

PLUGINS_GROUP = 'hmr_plugins'


class CommandRegistry:
    """Registry of command handlers.

    Attributes:
        strict_mode: If True, any plugin loading issue raises an error.
            If False, issues are emitted as warnings and loading continues.
        handlers: Handlers by command type.
    """

    def __init__(self, plugins: 'Iterable[Plugin]' = (), *,
                 strict: bool = False) -> None:
        """Initialize the registry.

        Args:
            plugins: Plugins registered right away.
            strict: Whether plugin issues are fatal.
        """
        self.strict_mode = strict
        self.handlers: dict[str, CommandHandler] = {}

        for plugin in plugins:
            self.add_plugin(plugin)

    @classmethod
    def default(cls, *, strict: bool = False,
                with_entrypoints: bool = True) -> 'CommandRegistry':
        """Create a registry with the builtin commands and installed plugins.

        Args:
            strict: Whether plugin issues are fatal.
            with_entrypoints: Whether to load the `hmr_plugins` entry points.

        Returns:
            A populated registry.
        """
        from pytest_hmr.builtins import plugin  # noqa: PLC0415

        registry = cls((plugin,), strict=strict)
        if with_entrypoints:
            registry.load_plugins()

        return registry

    def __contains__(self, name: str) -> bool:
        """Whether a command type is registered."""
        return name in self.handlers

    def get(self, name: str) -> 'CommandHandler':
        """Resolve the handlers of a command type.

        Args:
            name: Command type.

        Returns:
            The registered handlers.

        Raises:
            UsageError: If the command type is unknown.
        """
        try:
            return self.handlers[name]

        except KeyError:
            raise UsageError(f'Missing command: {name}') from None

    def add_handler(self, handler: 'CommandHandler',
                    entrypoint: 'EntryPoint | None' = None,
                    module: str | None = None) -> None:
        """Register a command handler.

        Args:
            handler: Declarative command handler.
            entrypoint: Entry point from which the handler was loaded,
                if applicable. Used for diagnostics and warnings.
            module: Display name of the handler origin.

        Raises:
            PluginError: If the handler shadows another one on strict mode.
        """
        origin = entrypoint.value if entrypoint else module or handler.__module__

        if handler.name in self.handlers and (error := self.emit_plugin_issue(
            f'Command {handler.name!r} from {origin!r} is shadowing an existing',
            entrypoint,
        )):
            raise error

        self.handlers[handler.name] = handler

    def add_plugin(self, plugin: Plugin,
                   entrypoint: 'EntryPoint | None' = None) -> None:
        """Register all the handlers of a plugin."""
        logger.debug('registering plugin %r (%d commands)', plugin.name, len(plugin.commands))

        for handler in plugin.commands:
            self.add_handler(handler, entrypoint, module=plugin.name)

    def emit_plugin_issue(self, message: str,
                          entrypoint: 'EntryPoint | None' = None) -> Exception | None:
        """Emit a plugin warning or return the exception.

        Args:
            message: Warning message to emit.
            entrypoint: Entry point of the plugin, if applicable.

        Returns:
            PluginError on strict mode, otherwise `None`
                with producing a PluginWarning.
        """
        if self.strict_mode:
            return PluginError(message, entrypoint=entrypoint)

        warn(message, category=PluginWarning, stacklevel=2)

        return None

    def _load_plugin(self, entrypoint: 'EntryPoint') -> None:
        """Load and register a single plugin entry point.

        Args:
            entrypoint: Entry point describing the plugin to load.

        Raises:
            PluginError: If any loading issues occur on strict mode.
        """
        try:
            plugin = entrypoint.load()

        except ValidationError as base:
            if error := self.emit_plugin_issue(
                f'Failed to validate entrypoint {entrypoint.name!r}',
                entrypoint,
            ):
                raise error from base
            return None

        except Exception as base:
            if error := self.emit_plugin_issue(
                f'Failed to load entrypoint {entrypoint.name!r}',
                entrypoint,
            ):
                raise error from base
            return None

        if not isinstance(plugin, Plugin):
            if error := self.emit_plugin_issue(
                f'Loaded from entrypoint {entrypoint.name!r} object is not a plugin',
                entrypoint,
            ):
                raise error
            return None

        self.add_plugin(plugin, entrypoint)

    def load_plugins(self) -> None:
        """Load plugins via entry points and register their handlers.

        Discovers plugins from the `hmr_plugins` entry point group.

        Raises:
            PluginError: If any loading issues occur on strict mode.
        """
        from importlib.metadata import entry_points  # noqa: PLC0415

        for entrypoint in entry_points().select(group=PLUGINS_GROUP):
            self._load_plugin(entrypoint)
