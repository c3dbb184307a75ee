"""Pytest item running one full HMR spec."""

from typing import TYPE_CHECKING

import pytest

from pytest_hmr.core import TestRunner

if TYPE_CHECKING:
    from typing import Any

    from pytest_hmr.state import TestState


class TestCase(pytest.Item):
    """Pytest item compiling and running a full spec.

    The files of the first label are the initial files; every label is
    then written and asserted in order of appearance.
    """

    __test__ = False

    def __init__(self, *, source: str, **kwargs: 'Any') -> None:
        """Initialize a pytest test case backed by a spec source.

        Args:
            source: Full spec source.
            **kwargs: Keyword pytest.Item arguments.
        """
        super().__init__(**kwargs)

        self.source = source

    def runtest(self) -> None:
        """Run the spec against a fresh environment."""
        from pytest_hmr.plugin import get_environment  # noqa: PLC0415

        runner = TestRunner(
            get_environment(self.config),
            settings=self.config.hmr_settings,  # type: ignore[attr-defined]
            registry=self.config.hmr_registry,  # type: ignore[attr-defined]
        )

        self.state: TestState = runner.spec(self.source, filename=self.filename)

    @property
    def filename(self) -> str:
        """Return filename associated with this spec."""
        return f'{self.path}'

    def reportinfo(self) -> tuple['Any', int, str]:
        """Location of the spec in test reports."""
        return self.path, 0, f'hmr spec: {self.name}'
