"""Tests for the command registry and the plugin system."""

from typing import TYPE_CHECKING, Any

import pytest
from pydantic import ValidationError

from pytest_hmr import init
from pytest_hmr.core import CommandRegistry, TestRunner
from pytest_hmr.errors import PluginError, PluginWarning, UsageError
from pytest_hmr.extensions import CommandHandler, Plugin

from tests.examples.plugins import CountCommand, TitleCommand, example

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from pytest_mock import MockType

    from pytest_hmr.config import HmrSettings

    from tests.examples.environment import FakeEnvironment


def test_builtin_commands() -> None:
    """Register the builtin commands."""
    registry = CommandRegistry.default(with_entrypoints=False)

    for name in ('spec', 'spec.expect', 'init', 'change', 'page', 'cons.wait', 'effect'):
        assert name in registry

    with pytest.raises(UsageError, match='Missing command: nope'):
        registry.get('nope')


def test_entrypoint_plugin(patch_entrypoints: 'Callable[..., MockType]',
                           environment: 'FakeEnvironment', settings: 'HmrSettings') -> None:
    """Load plugin commands and resolve them in both phases."""
    patch_entrypoints(example)

    registry = CommandRegistry.default(strict=True)
    assert 'example.title' in registry

    results = []

    def script() -> 'Generator[Any, Any, None]':
        results.append((yield CountCommand()))
        yield init({'App.svelte': '<p>x</p>'})
        results.append((yield TitleCommand()))
        results.append((yield CountCommand()))

    TestRunner(environment, settings=settings, registry=registry)(script)

    assert results == [1, 'Fake page', 1]


def test_shadowing() -> None:
    """Warn about handlers shadowing existing ones."""
    registry = CommandRegistry.default(with_entrypoints=False)
    handler = CommandHandler(name='page', run=lambda state, command: None)  # noqa: ARG005

    with pytest.warns(PluginWarning, match=r'is shadowing an existing$'):
        registry.add_handler(handler)

    assert registry.get('page') is handler


def test_strict_shadowing() -> None:
    """Reject handlers shadowing existing ones in strict mode."""
    registry = CommandRegistry.default(strict=True, with_entrypoints=False)

    with pytest.raises(PluginError, match=r'is shadowing an existing$'):
        registry.add_plugin(Plugin(name='test', commands=[
            CommandHandler(name='init', init=lambda state, command: None),  # noqa: ARG005
        ]))


@pytest.mark.parametrize('plugin, raises, expect_message', (
    pytest.param(object(), None, 'object is not a plugin', id='not a plugin'),
    pytest.param(example, ImportError('boom'), "Failed to load entrypoint 'tests'", id='load failure'),
))
def test_invalid_entrypoint(patch_entrypoints: 'Callable[..., MockType]', plugin: Any,  # noqa: ANN401
                            raises: Exception | None, expect_message: str) -> None:
    """Report entry points that do not provide a plugin."""
    patch_entrypoints(plugin, raises=raises)

    with pytest.raises(PluginError, match=expect_message):
        CommandRegistry.default(strict=True)

    with pytest.warns(PluginWarning, match=expect_message):
        registry = CommandRegistry.default()

    assert 'example.title' not in registry


def test_handler_without_phase() -> None:
    """Reject handlers without any phase."""
    with pytest.raises(ValidationError, match='has no handler'):
        CommandHandler(name='nothing')
