"""Shared pytest fixtures for ashuffle tests."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from ashuffle.lib import config  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """No config file or MPD_* variables leak in from the machine running tests."""
    monkeypatch.setattr(config, "_SEARCH_PATHS", [])
    monkeypatch.setattr(config, "_config", None)
    for var in ("ASHUFFLE_CONFIG", "MPD_HOST", "MPD_PORT", "NOTIFY_SOCKET"):
        monkeypatch.delenv(var, raising=False)
    yield
    config._config = None


@pytest.fixture
def write_config(tmp_path, monkeypatch):
    """Point the config loader at a JSON file with the given contents."""
    def _write(text: str) -> Path:
        path = tmp_path / "config.json"
        path.write_text(text)
        monkeypatch.setenv("ASHUFFLE_CONFIG", str(path))
        config.reload_config()
        return path
    return _write
