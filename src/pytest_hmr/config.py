"""Runtime settings.

Settings are resolved, by decreasing priority, from explicit values
(pytest options), `HMR_*` environment variables and an optional
`hmr.yml` file in the working directory.
"""

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from pytest_hmr.models import SettingsModel

ENV_PREFIX = 'HMR_'
YAML_FILE = 'hmr.yml'


class HmrSettings(SettingsModel):
    """Settings of the HMR test runner."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        yaml_file=YAML_FILE,
    )

    environment: str | None = Field(
        default=None,
        title='Environment factory',
        description=(
            'Import path (`module:factory`) of a callable receiving the '
            'settings and returning the live environment.'
        ),
    )

    page_url: str = Field(
        default='/',
        title='Page URL',
        description='URL of the page loaded at the start of each test.',
    )

    app_root_selector: str = Field(
        default='#app',
        title='Application root selector',
        description='Selector of the element whose HTML is asserted.',
    )

    app_html_prefix: str | None = Field(
        default=None,
        title='Application HTML prefix',
        description=(
            'Normalized HTML that must start the application root, '
            'and is stripped before comparison.'
        ),
    )

    focus_selector: str = Field(
        default='[data-focus]',
        title='Focus selector',
        description=(
            'Selector of an explicit focus marker. When the page contains '
            'a matching element, its HTML is asserted instead of the '
            'application root.'
        ),
    )

    console: bool = Field(
        default=False,
        title='Console echo',
        description='Log every console message of the page.',
    )

    console_buffer_delay: float = Field(
        default=0.01,
        ge=0,
        title='Console buffering delay',
        description=(
            'Seconds during which unexpected console messages are '
            'collected before the test fails.'
        ),
    )

    strict: bool = Field(
        default=True,
        title='Strict mode',
        description='Whether plugin loading issues are fatal.',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Resolve settings from init values, environment and YAML file."""
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls),
        )
