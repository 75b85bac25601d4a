"""
Shared test fixtures and configuration.
"""

import pytest

from tests.fakes import FakeRunner


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point HOME (and XDG config) at a temp dir."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("HOSTSWEEP_CONFIG", raising=False)
    return home_dir
