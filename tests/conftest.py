"""Shared test fixtures for keelson.

Provides the sample project under ``tests/fixtures/site`` (importable as the
``sample_app`` package), configuration and request builders, isolation of
the installed output manager, and a CLI runner.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from keelson.config import Configuration
from keelson.http import Request, Response
from keelson.output import reset_output
from keelson.plugins import PluginRegistry


FIXTURES_DIR = Path(__file__).parent / "fixtures"
SITE_DIR = FIXTURES_DIR / "site"

if str(SITE_DIR) not in sys.path:
    sys.path.insert(0, str(SITE_DIR))


# ---------------------------------------------------------------------------
# Global state
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _forget_output() -> None:
    """Drop the installed output manager, which holds the streams of the test that made it."""
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Sample project
# ---------------------------------------------------------------------------


@pytest.fixture
def site_dir() -> Path:
    """The sample project directory."""
    return SITE_DIR


@pytest.fixture
def site_settings() -> dict[str, Any]:
    """The sample project's default settings, as a fresh dict."""
    with open(SITE_DIR / "config" / "default.json") as f:
        return json.load(f)


@pytest.fixture
def site_config(site_settings: dict[str, Any]) -> Configuration:
    """The sample project's default configuration."""
    return Configuration(site_settings, SITE_DIR)


@pytest.fixture
def make_config(site_settings: dict[str, Any]) -> Callable[..., Configuration]:
    """Build a configuration for the sample project with some keys replaced.

    Keys given as ``None`` are removed.
    """

    def _make(**overrides: Any) -> Configuration:
        settings = dict(site_settings)
        for key, value in overrides.items():
            if value is None:
                settings.pop(key, None)
            else:
                settings[key] = value
        return Configuration(settings, SITE_DIR)

    return _make


@pytest.fixture
def make_registry() -> Callable[..., PluginRegistry]:
    """Build a loaded plugin registry for *config* and an optional request."""

    def _make(
        config: Configuration,
        request: Optional[Request] = None,
        response: Optional[Response] = None,
    ) -> PluginRegistry:
        registry = PluginRegistry(request or Request("Home"), response or Response(), config)
        registry.load_plugins()
        return registry

    return _make


@pytest.fixture
def isolated_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_DATA_HOME at a temporary directory and clear KEELSON_CONFIG."""
    data_dir = tmp_path / "data"
    monkeypatch.setenv("XDG_DATA_HOME", str(data_dir))
    monkeypatch.delenv("KEELSON_CONFIG", raising=False)
    return data_dir


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
