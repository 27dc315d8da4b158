"""Shared test fixtures for sdking.

Provides reusable fixtures for loading spec fixtures, creating isolated
config environments, managing output state, and importing generated SDKs.
These fixtures are automatically discovered by pytest and available to
all test modules without explicit imports.
"""

from __future__ import annotations

import importlib
import json
import sys
from pathlib import Path
from typing import Any

import pytest

from sdking.models import GeneratorOptions, ParsedSpec
from sdking.output import OutputFormat, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Raw spec fixtures (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_raw() -> dict[str, Any]:
    """Load raw petstore 3.0 spec dict."""
    with open(FIXTURES_DIR / "petstore_3.0.json") as f:
        return json.load(f)


@pytest.fixture
def tree_raw() -> dict[str, Any]:
    """Load raw 3.1 spec dict with cyclic and composed schemas."""
    with open(FIXTURES_DIR / "tree_3.1.json") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Parsed spec fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_spec(petstore_raw: dict[str, Any]) -> ParsedSpec:
    """Parsed petstore 3.0 spec."""
    from sdking.parser.extractor import extract_spec

    return extract_spec(petstore_raw, "3.0.3")


@pytest.fixture
def tree_spec(tree_raw: dict[str, Any]) -> ParsedSpec:
    """Parsed 3.1 tree spec."""
    from sdking.parser.extractor import extract_spec

    return extract_spec(tree_raw, "3.1.0")


@pytest.fixture
def relative_options(tmp_path: Path) -> GeneratorOptions:
    """Default generation options writing below tmp_path."""
    return GeneratorOptions(input="spec.json", output=str(tmp_path / "sdk"))


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_DATA_HOME to a subdirectory of tmp_path so that crash logs
    never touch the real user directory. Clears all SDKING_* environment
    variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in ["SDKING_IMPORT_STYLE", "SDKING_PACKAGE_NAME"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Generated package import
# ---------------------------------------------------------------------------


@pytest.fixture
def import_generated(monkeypatch: pytest.MonkeyPatch):
    """Import a generated SDK package from a directory.

    Returns a callable ``(parent_dir, package_name) -> module``. Every
    module of the imported package is dropped from ``sys.modules`` after
    the test so the next test imports fresh code.
    """
    imported: list[str] = []

    def _import(parent: Path, name: str):
        monkeypatch.syspath_prepend(str(parent))
        importlib.invalidate_caches()
        imported.append(name)
        return importlib.import_module(name)

    yield _import

    for name in imported:
        for module in [m for m in sys.modules if m == name or m.startswith(f"{name}.")]:
            del sys.modules[module]


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
