"""Pytest collector of HMR spec files.

Each `test_*.hmr` file holds one full spec: a `# Title` line, file
sections and an expectations section. The file is collected as a single
test case named by its title.
"""

from typing import TYPE_CHECKING

import pytest

from pytest_hmr.dsl import spec_title

from .case import TestCase

if TYPE_CHECKING:
    from collections.abc import Iterable


class TestSpec(pytest.File):
    """Pytest file collector for HMR spec files."""

    __test__ = False

    def collect(self) -> 'Iterable[TestCase]':
        """Collect the test case of a spec file.

        Only the title is parsed at collection time, the spec is compiled
        when the test runs.

        Returns:
            Iterable of `TestCase` instances for pytest execution.

        Raises:
            SpecSyntaxError: If the file does not start with a title.
        """
        source = self.path.read_text(encoding='utf-8')

        yield TestCase.from_parent(
            self,
            name=spec_title(source, filename=str(self.path)),
            source=source,
        )
