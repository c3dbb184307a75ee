"""Declarative command plugin definition.

This module defines the containers used to describe the commands
provided by a pytest-hmr plugin.

A command handler binds a command `type` to the functions resolving it
in each execution phase:
- `init`, called while the test script is being prepared, before the
  live page exists;
- `run`, called once the page is loaded.

A command with no `init` handler triggers the transition to the run
phase when it is yielded during the init phase.

Plugins are published under the `hmr_plugins` entry point group and are
registered by the command registry on startup.
"""

from collections.abc import Callable
from typing import Any

from pydantic import Field, model_validator

from pytest_hmr.models import SchemaModel

__all__ = (
    'CommandHandler',
    'CommandRunner',
    'Plugin',
)

#: A handler receives the test state and the command, and returns the
#: value sent back into the test script. It may be a coroutine function.
type CommandRunner = Callable[[Any, Any], Any]


class CommandHandler(SchemaModel):
    """Phase handlers of one command type."""

    name: str = Field(
        min_length=1,
        title='Command type',
        description='Value of the `type` discriminator of the handled commands.',
    )

    init: CommandRunner | None = Field(
        default=None,
        title='Init phase handler',
        description='Handler called before the page is loaded.',
    )

    run: CommandRunner | None = Field(
        default=None,
        title='Run phase handler',
        description='Handler called against the live page.',
    )

    @model_validator(mode='after')
    def check_handlers(self) -> 'CommandHandler':
        """Ensure the command is handled in at least one phase."""
        if self.init is None and self.run is None:
            raise ValueError(f'command {self.name!r} has no handler')

        return self


class Plugin(SchemaModel):
    """Declarative container of command handlers.

    Plugin instances are declarative descriptions only. They are
    consumed by the command registry, which detects handlers shadowing
    each other.
    """

    name: str = Field(
        min_length=1,
        title='Plugin name',
        description='Name of the plugin, used for diagnostics.',
    )

    version: int = Field(
        default=1,
        title='Plugin contract version',
        description=(
            'Version of the handler contract. '
            'This is not a semantic version of the plugin implementation.'
        ),
    )

    commands: list[CommandHandler] = Field(
        default_factory=list,
        title='Commands',
        description='Handlers of the commands provided by the plugin.',
    )
