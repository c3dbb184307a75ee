"""Tests for the runtime settings."""

from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from pytest_hmr.config import HmrSettings

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem

TEST_SETTINGS_YAML = '''
page_url: /counter
app_root_selector: '#root'
console_buffer_delay: 0.5
'''


def test_defaults(fs: 'FakeFilesystem') -> None:  # noqa: ARG001
    """Use the defaults without configuration."""
    settings = HmrSettings()

    assert settings.page_url == '/'
    assert settings.app_root_selector == '#app'
    assert settings.focus_selector == '[data-focus]'
    assert settings.environment is None
    assert settings.strict


def test_yaml_file(fs: 'FakeFilesystem') -> None:
    """Read the settings file of the working directory."""
    fs.create_file('hmr.yml', contents=TEST_SETTINGS_YAML)

    settings = HmrSettings()

    assert settings.page_url == '/counter'
    assert settings.app_root_selector == '#root'
    assert settings.console_buffer_delay == 0.5


def test_priority(fs: 'FakeFilesystem', monkeypatch: pytest.MonkeyPatch) -> None:
    """Prefer explicit values to environment variables to the settings file."""
    fs.create_file('hmr.yml', contents=TEST_SETTINGS_YAML)
    monkeypatch.setenv('HMR_PAGE_URL', '/from-env')
    monkeypatch.setenv('HMR_APP_ROOT_SELECTOR', '#env')

    settings = HmrSettings(app_root_selector='#explicit')

    assert settings.page_url == '/from-env'
    assert settings.app_root_selector == '#explicit'
    assert settings.console_buffer_delay == 0.5


def test_invalid_settings(fs: 'FakeFilesystem') -> None:  # noqa: ARG001
    """Reject invalid values."""
    with pytest.raises(ValidationError):
        HmrSettings(console_buffer_delay=-1)


def test_frozen_settings(fs: 'FakeFilesystem') -> None:  # noqa: ARG001
    """Forbid changes of resolved settings."""
    settings = HmrSettings()

    with pytest.raises(ValidationError):
        settings.page_url = '/other'  # type: ignore[misc]
