"""Shared fixtures for Sonos Moodring Python unit tests."""

import json
import sys
from pathlib import Path

import pytest

# Add services/ to sys.path so `from moodring.config import cfg` works
SERVICES_DIR = Path(__file__).resolve().parents[3] / "services"
sys.path.insert(0, str(SERVICES_DIR))


@pytest.fixture(autouse=True)
def _reset_config_cache():
    """Reset the config module's cache before each test."""
    import moodring.config as config_mod
    config_mod._config = None
    yield
    config_mod._config = None


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Provide a temp config file path and patch _SEARCH_PATHS to use it.

    Returns the Path object — write JSON to it with write_text() or use
    the write_config fixture for convenience.
    """
    import moodring.config as config_mod

    path = tmp_path / "config.json"
    monkeypatch.setattr(config_mod, "_SEARCH_PATHS", [str(path)])
    return path


@pytest.fixture
def write_config(config_file):
    """Write a dict as JSON to the temp config file.

    Usage:
        def test_something(write_config):
            write_config({"player": {"name": "Kitchen"}})
            assert cfg("player", "name") == "Kitchen"
    """
    import moodring.config as config_mod

    def _write(data: dict):
        config_file.write_text(json.dumps(data))
        config_mod._config = None  # force re-read
        return config_file

    return _write


@pytest.fixture
def mock_config(monkeypatch):
    """Directly set the config dict without file I/O."""
    import moodring.config as config_mod

    def _mock(data: dict):
        monkeypatch.setattr(config_mod, "_config", data)

    return _mock


# --- Fake aiohttp session ---


class FakeResponse:
    def __init__(self, status=200, body=None, exc=None):
        self.status = status
        self._body = body
        self._exc = exc

    async def json(self, content_type="application/json"):
        if self._exc:
            raise self._exc
        return self._body

    def raise_for_status(self):
        if self.status >= 400:
            import aiohttp
            raise aiohttp.ClientError(f"HTTP {self.status}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession.get(); records every request.

    `routes` maps a URL to a FakeResponse or an exception instance to raise.
    """

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append({"url": url, "params": params, "headers": headers})
        result = self.routes[url]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def fake_session():
    """Build a FakeSession from {url: FakeResponse | Exception}."""
    return FakeSession


@pytest.fixture
def response():
    """Build a FakeResponse(status=200, body=None, exc=None)."""
    return FakeResponse
