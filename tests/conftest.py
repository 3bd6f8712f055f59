"""Shared test fixtures for pavo.

Fixtures defined here are available to all tests in the suite without
needing an explicit import. Add project-wide fixtures here; keep
command-specific fixtures close to the tests that use them.
"""
from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner

from pavo.cli.options import OptionRegistry, default_registry
from pavo.debug import configure_debug


@pytest.fixture()
def registry() -> OptionRegistry:
    """Return a fresh copy of the CLI's option registry."""
    return default_registry()


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    """A minimal project tree with an index page and one source module."""
    (tmp_path / "index.html").write_text("<h1>pavo</h1>", encoding="utf-8")
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.js").write_text("console.log('hi')\n", encoding="utf-8")
    return tmp_path


@pytest.fixture(autouse=True)
def _reset_debug_logging() -> Iterator[None]:
    """Leave the ``pavo`` logger quiet after every test."""
    yield
    configure_debug(None)


@pytest.fixture()
def expected_version() -> str:
    """Return the current expected version string.

    Update this fixture when cutting a release so that the version
    test immediately catches stale ``__version__`` values.
    """
    return "0.1.0"
