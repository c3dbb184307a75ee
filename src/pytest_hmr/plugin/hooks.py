"""Hook specifications of the pytest-hmr plugin."""

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config

    from pytest_hmr.config import HmrSettings
    from pytest_hmr.core.environment import Environment


@pytest.hookspec(firstresult=True)
def pytest_hmr_environment(config: 'Config', settings: 'HmrSettings') -> 'Environment | None':
    """Provide the live environment of a test.

    Called once for each test using the `hmr_environment` fixture and
    for each collected `test_*.hmr` spec. The first non-`None` result
    is used. The default implementation calls the factory configured
    with `--hmr-environment` (or the `environment` setting).

    Args:
        config: Pytest configuration object.
        settings: Resolved HMR settings.

    Returns:
        The live environment, or `None` to let other plugins decide.
    """
