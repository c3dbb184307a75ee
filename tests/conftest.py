"""Tests configurations and fixtures."""

from importlib.metadata import EntryPoint, EntryPoints
from typing import TYPE_CHECKING

import pytest

from pytest_hmr.config import HmrSettings
from pytest_hmr.core import CommandRegistry, TestRunner

from tests.examples.environment import FakeEnvironment

if TYPE_CHECKING:
    from collections.abc import Callable

    from pytest_mock import MockerFixture, MockType

    from pytest_hmr.extensions import Plugin

pytest_plugins = ['pytester']


@pytest.fixture
def settings() -> HmrSettings:
    """Provide settings isolated from the environment variables.

    The console buffering delay is shortened to keep tests fast.
    """
    return HmrSettings(console_buffer_delay=0.001, app_html_prefix=None)


@pytest.fixture
def registry() -> CommandRegistry:
    """Provide a registry with the builtin commands only."""
    return CommandRegistry.default(strict=True, with_entrypoints=False)


@pytest.fixture
def environment() -> FakeEnvironment:
    """Provide an in-memory live environment."""
    return FakeEnvironment()


@pytest.fixture
def runner(environment: FakeEnvironment, settings: HmrSettings,
           registry: CommandRegistry) -> TestRunner:
    """Provide a test runner bound to the in-memory environment."""
    return TestRunner(environment, settings=settings, registry=registry)


@pytest.fixture
def hmr_environment(environment: FakeEnvironment) -> FakeEnvironment:
    """Provide the in-memory environment to the `hmr` fixture."""
    return environment


@pytest.fixture
def patch_entrypoints(mocker: 'MockerFixture') -> 'Callable[..., MockType]':
    """Provide a factory for mocking `importlib.metadata.entry_points`.

    Returns a callable that patches `entry_points()` to simulate
    discovery of plugins in the `hmr_plugins` entry point group.

    The returned factory allows configuring:
    - a successfully loadable plugin,
    - or an exception raised during plugin loading,
    - or an empty entry point list.
    """
    def patch(*plugins: 'Plugin | object', raises: Exception | None = None) -> 'MockType':
        """Patch `entry_points` with a controlled plugin configuration.

        Args:
            plugins: Objects returned by `EntryPoint.load()`.
                If empty, no entry points are registered.
            raises: Exception to raise when `EntryPoint.load()` is called.

        Returns:
            A mock patch object replacing `importlib.metadata.entry_points`.
        """
        entrypoints = []
        for plugin in plugins:
            ep = mocker.Mock(spec=EntryPoint)
            ep.group = 'hmr_plugins'
            ep.name = 'tests'
            ep.value = 'tests.examples.plugins:example'
            ep.load.return_value = plugin
            if raises is not None:
                ep.load.side_effect = raises
            entrypoints.append(ep)

        return mocker.patch(
            'importlib.metadata.entry_points',
            return_value=EntryPoints(entrypoints),
        )

    return patch
