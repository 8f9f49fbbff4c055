"""
Sonos household watcher.

Polls the household through SoCo and turns what it sees into two kinds of
notification, delivered on the event loop one at a time:

  on_topology_change(zones)  – the zone -> group coordinator mapping changed
  on_transport_state(state)  – a coordinator's transport state, playing
                               track or next track changed

SoCo calls are blocking UPnP requests, so they run in the executor.
"""

import asyncio
import logging
import time
from typing import NamedTuple

import soco

logger = logging.getLogger("moodring.sonos")

PLAYING = "PLAYING"


class Track(NamedTuple):
    artist: str
    album: str


class TransportState(NamedTuple):
    uid: str                    # coordinator that reported the state
    zone_state: str             # PLAYING | PAUSED_PLAYBACK | STOPPED | TRANSITIONING
    current_track: Track | None
    next_track: Track | None
    track_id: str = ""          # queue uri or position; changes with every track


class Zone(NamedTuple):
    speaker: soco.SoCo
    name: str
    coordinator_uid: str


class PlayerHandle:
    """The tracked zone.  Resolved once; its coordinator follows regrouping."""

    def __init__(self, zone: Zone, uid: str):
        self.uid = uid
        self.name = zone.name
        self.speaker = zone.speaker
        self.coordinator_uid = zone.coordinator_uid

    def update(self, zones: dict[str, Zone]):
        zone = zones.get(self.uid)
        if zone and zone.coordinator_uid != self.coordinator_uid:
            logger.info("Coordinator of %s changed from %s to %s",
                        self.name, self.coordinator_uid, zone.coordinator_uid)
            self.coordinator_uid = zone.coordinator_uid

    @classmethod
    def find(cls, zones: dict[str, Zone], name: str) -> "PlayerHandle | None":
        """Look a zone up by its room name (case-insensitive)."""
        wanted = name.strip().lower()
        for uid, zone in zones.items():
            if zone.name.strip().lower() == wanted:
                return cls(zone, uid)
        return None


def _track(artist, album) -> Track | None:
    if not artist and not album:
        return None
    return Track(artist or "", album or "")


def read_transport_state(uid: str, speaker) -> TransportState:
    """Snapshot one coordinator.  Blocking."""
    transport = speaker.get_current_transport_info()
    zone_state = transport.get("current_transport_state", "STOPPED")
    info = speaker.get_current_track_info()
    current = _track(info.get("artist"), info.get("album"))
    track_id = info.get("uri") or str(info.get("playlist_position") or "")

    next_track = None
    if zone_state == PLAYING:
        try:
            position = int(info.get("playlist_position") or 0)
        except (ValueError, TypeError):
            position = 0
        if position > 0:
            # playlist_position is 1-based, so start=position is the next item
            queue = speaker.get_queue(start=position, max_items=1)
            if queue:
                item = queue[0]
                next_track = _track(getattr(item, "creator", ""), getattr(item, "album", ""))

    return TransportState(uid, zone_state, current, next_track, track_id)


class SonosWatcher:
    """Polling loop producing topology and transport-state notifications."""

    def __init__(self, on_topology_change, on_transport_state,
                 poll_interval: float = 1.0, topology_interval: float = 30,
                 executor=None, discover=soco.discover):
        self._on_topology_change = on_topology_change
        self._on_transport_state = on_transport_state
        self._poll_interval = poll_interval
        self._topology_interval = topology_interval
        self._executor = executor
        self._discover_fn = discover
        self.running = False
        self.zones: dict[str, Zone] = {}
        self._last_discovery: float | None = None
        self._last_states: dict[str, TransportState] = {}

    def _discover(self) -> dict[str, Zone]:
        speakers = self._discover_fn(timeout=5) or set()
        zones = {}
        for speaker in speakers:
            try:
                group = speaker.group
                coordinator_uid = group.coordinator.uid if group else speaker.uid
                zones[speaker.uid] = Zone(speaker, speaker.player_name, coordinator_uid)
            except Exception as e:
                logger.debug("Skipping unreachable speaker %s: %s", speaker, e)
        return zones

    def _poll(self, zones: dict[str, Zone]) -> list[TransportState]:
        states = []
        for uid in sorted({z.coordinator_uid for z in zones.values()}):
            zone = zones.get(uid)
            if zone is None:
                continue
            try:
                states.append(read_transport_state(uid, zone.speaker))
            except Exception as e:
                logger.debug("Could not read transport state of %s: %s", zone.name, e)
        return states

    @staticmethod
    def _shape(zones: dict[str, Zone]) -> dict[str, tuple[str, str]]:
        return {uid: (z.name, z.coordinator_uid) for uid, z in zones.items()}

    async def check_topology(self):
        loop = asyncio.get_running_loop()
        zones = await loop.run_in_executor(self._executor, self._discover)
        self._last_discovery = time.monotonic()
        if self._shape(zones) != self._shape(self.zones):
            logger.info("Topology changed: %s",
                        ", ".join(sorted(z.name for z in zones.values())) or "no zones")
            self.zones = zones
            self._last_states = {uid: s for uid, s in self._last_states.items()
                                 if uid in zones}
            self._on_topology_change(zones)

    async def check_transport(self):
        loop = asyncio.get_running_loop()
        states = await loop.run_in_executor(self._executor, self._poll, self.zones)
        for state in states:
            if self._last_states.get(state.uid) == state:
                continue
            self._last_states[state.uid] = state
            logger.debug("Transport state: %s", state)
            self._on_transport_state(state)

    async def run(self):
        self.running = True
        logger.info("Watching Sonos household (poll every %.1fs)", self._poll_interval)
        while self.running:
            try:
                if (self._last_discovery is None or
                        time.monotonic() - self._last_discovery >= self._topology_interval):
                    await self.check_topology()
                await self.check_transport()
            except Exception as e:
                logger.error("Error in Sonos monitoring: %s", e)
            await asyncio.sleep(self._poll_interval)

    def stop(self):
        self.running = False
