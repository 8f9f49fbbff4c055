"""Tests for services/listener.py wiring (no network, no Sonos)."""

import asyncio
from types import SimpleNamespace

import pytest

import listener
from moodring.color_cache import TrackKey
from moodring.sonos_watch import Zone


def zones(coordinator_uid="RINCON_A"):
    return {
        "RINCON_A": Zone(None, listener.PLAYER_NAME.title(), coordinator_uid),
        "RINCON_B": Zone(None, "Kitchen", "RINCON_B"),
    }


@pytest.fixture
def moodring():
    return listener.Moodring()


@pytest.fixture
def bridge_setup_returns(monkeypatch):
    """Replace BridgeSetup with one whose run() returns (or raises) `result`."""

    def _install(result):
        class FakeSetup:
            def __init__(self, *args, **kwargs):
                pass

            async def run(self):
                if isinstance(result, Exception):
                    raise result
                return result

        monkeypatch.setattr(listener, "BridgeSetup", FakeSetup)

    return _install


class TestTopology:
    def test_player_resolved_on_first_topology(self, moodring):
        moodring.on_topology_change(zones())
        assert moodring.player.uid == "RINCON_A"
        assert moodring.player.coordinator_uid == "RINCON_A"

    def test_player_follows_regrouping(self, moodring):
        moodring.on_topology_change(zones())
        moodring.on_topology_change(zones(coordinator_uid="RINCON_B"))
        assert moodring.player.coordinator_uid == "RINCON_B"

    def test_player_absent(self, moodring):
        moodring.on_topology_change({"RINCON_B": Zone(None, "Kitchen", "RINCON_B")})
        assert moodring.player is None
        moodring.on_topology_change(zones())
        assert moodring.player is not None


class TestBridgeSetup:
    def test_success_attaches_driver(self, moodring, bridge_setup_returns):
        bridge = SimpleNamespace(ip="192.168.1.20")
        bridge_setup_returns((bridge, {1: [1, 4]}))

        asyncio.run(moodring.setup_bridge())

        assert moodring.bridge_ip == "192.168.1.20"
        assert moodring.driver.bridge is bridge
        assert moodring.driver.assignments == {1: [1, 4]}

    def test_no_bridge_leaves_driver_detached(self, moodring, bridge_setup_returns):
        bridge_setup_returns((None, {}))

        asyncio.run(moodring.setup_bridge())

        assert moodring.bridge_ip is None
        assert moodring.driver.bridge is None

    def test_crash_is_logged_not_raised(self, moodring, bridge_setup_returns, caplog):
        bridge_setup_returns(RuntimeError("boom"))

        asyncio.run(moodring.setup_bridge())

        assert moodring.driver.bridge is None
        assert any("bridge setup failed" in r.message for r in caplog.records)


class TestStatus:
    def test_before_anything_is_known(self, moodring):
        status = moodring.status()
        assert status["player"] is None
        assert status["bridge"] is None
        assert status["assignments"] == {}
        assert status["cache"] == {"entries": 0, "pending": []}

    def test_reports_player_and_cache(self, moodring):
        moodring.on_topology_change(zones())
        moodring.driver.attach(SimpleNamespace(ip="10.0.0.2"), {0: [3]})
        moodring.bridge_ip = "10.0.0.2"
        moodring.cache.store(TrackKey("Muse", "Absolution"), ["#000000"])
        moodring.cache.reserve(TrackKey("Muse", "Drones"))

        status = moodring.status()

        assert status["player"]["coordinator"] == "RINCON_A"
        assert status["bridge"] == "10.0.0.2"
        assert status["assignments"] == {"0": [3]}
        assert status["cache"]["entries"] == 2
        assert status["cache"]["pending"] == ["Drones by Muse"]
