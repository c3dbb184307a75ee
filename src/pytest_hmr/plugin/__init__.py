"""Pytest plugin running HMR test scripts and spec files.

This module integrates the `pytest-hmr` engine with pytest by:
- registering custom command-line options;
- resolving the runtime settings and the command registry once;
- exposing the `hmr` fixture running test scripts;
- collecting `test_*.hmr` files as full specs.

The live environment is provided by the `pytest_hmr_environment` hook,
whose default implementation calls the factory configured with
`--hmr-environment`.
"""

from pkgutil import resolve_name
from re import match
from typing import TYPE_CHECKING

import pytest

from pytest_hmr.config import HmrSettings
from pytest_hmr.errors import UsageError

from . import hooks
from .spec import TestSpec

if TYPE_CHECKING:
    from pathlib import Path

    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.fixtures import FixtureRequest
    from _pytest.nodes import Node
    from pluggy import PluginManager

    from pytest_hmr.core import Environment, TestRunner


def pytest_addoption(parser: 'Parser') -> None:
    """Register pytest command-line options for pytest-hmr.

    Args:
        parser: Pytest argument parser.
    """
    group = parser.getgroup('hmr', 'hot module replacement tests')
    group.addoption(
        '--hmr-environment',
        action='store',
        dest='hmr_environment',
        default=None,
        metavar='MODULE:FACTORY',
        help=(
            'Import path of a callable receiving the HMR settings and '
            'returning the live environment.'
        ),
    )
    group.addoption(
        '--hmr-app-root',
        action='store',
        dest='hmr_app_root',
        default=None,
        metavar='SELECTOR',
        help='Selector of the element whose HTML is asserted.',
    )
    group.addoption(
        '--hmr-console',
        action='store_true',
        dest='hmr_console',
        default=None,
        help='Log every console message of the page under test.',
    )
    group.addoption(
        '--hmr-relaxed',
        action='store_true',
        dest='hmr_relaxed',
        default=False,
        help=(
            'Disable strict plugin loading. '
            'Shadowed commands and third-party plugin loading errors '
            'will only emit warnings.'
        ),
    )


def pytest_addhooks(pluginmanager: 'PluginManager') -> None:
    """Register the pytest-hmr hook specifications."""
    pluginmanager.add_hookspecs(hooks)


def pytest_configure(config: 'Config') -> None:
    """Configure pytest-hmr integration.

    Resolves the settings, command-line options taking precedence over
    the environment variables and `hmr.yml`, and attaches them with the
    command registry to the pytest configuration object.

    Args:
        config: Pytest configuration object.
    """
    overrides = {
        'environment': config.getoption('hmr_environment', default=None),
        'app_root_selector': config.getoption('hmr_app_root', default=None),
        'console': config.getoption('hmr_console', default=None),
    }
    if config.getoption('hmr_relaxed', default=False):
        overrides['strict'] = False

    settings = HmrSettings(**{
        name: value
        for name, value in overrides.items()
        if value is not None
    })

    from pytest_hmr.core import CommandRegistry  # noqa: PLC0415

    config.hmr_settings = settings  # type: ignore[attr-defined]
    config.hmr_registry = CommandRegistry.default(strict=settings.strict)  # type: ignore[attr-defined]


@pytest.hookimpl(trylast=True)
def pytest_hmr_environment(config: 'Config', settings: HmrSettings) -> 'Environment | None':  # noqa: ARG001
    """Create the environment with the configured factory, if any."""
    if not settings.environment:
        return None

    factory = resolve_name(settings.environment)

    return factory(settings)


def get_environment(config: 'Config') -> 'Environment':
    """Resolve the live environment through the plugin hook.

    Raises:
        UsageError: If no plugin provides an environment.
    """
    environment = config.hook.pytest_hmr_environment(
        config=config,
        settings=config.hmr_settings,  # type: ignore[attr-defined]
    )
    if environment is None:
        raise UsageError(
            'No HMR environment: use --hmr-environment or implement '
            'the pytest_hmr_environment hook',
        )

    return environment


@pytest.fixture
def hmr_settings(request: 'FixtureRequest') -> HmrSettings:
    """Resolved HMR settings."""
    return request.config.hmr_settings  # type: ignore[attr-defined]


@pytest.fixture
def hmr_environment(request: 'FixtureRequest') -> 'Environment':
    """Live environment of the test."""
    return get_environment(request.config)


@pytest.fixture
def hmr(request: 'FixtureRequest', hmr_environment: 'Environment',
        hmr_settings: HmrSettings) -> 'TestRunner':
    """Runner of test scripts and full specs.

        def test_update(hmr):
            def script():
                yield init({'App.svelte': '<h1>zero</h1>'})
                yield change({'App.svelte': '<h1>one</h1>'})

            hmr(script)
    """
    from pytest_hmr.core import TestRunner  # noqa: PLC0415

    return TestRunner(
        hmr_environment,
        settings=hmr_settings,
        registry=request.config.hmr_registry,  # type: ignore[attr-defined]
    )


def pytest_collect_file(parent: 'Node', file_path: 'Path') -> TestSpec | None:
    """Collect HMR spec files.

    Files matching the pattern `test_*.hmr` are treated as full specs
    and collected using `TestSpec`.

    Args:
        parent: Parent pytest collection node.
        file_path: Path to the file being considered.

    Returns:
        A `TestSpec` collector if the file matches, otherwise `None`.
    """
    if match(r'^test_.+\.hmr$', file_path.name):
        return TestSpec.from_parent(
            parent,
            path=file_path,
        )

    return None
