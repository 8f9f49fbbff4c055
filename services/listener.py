#!/usr/bin/env python3
"""
Sonos Moodring listener (sonos-moodring)

Watches a Sonos zone and, whenever it starts playing something new, sets the
configured Hue lights to the dominant colors of the album's cover art.
The next track in the queue is looked up ahead of time so its colors are
ready when it starts.

On startup the Hue bridge is discovered (or taken from hue.ip) and an app
user is registered if needed.  Until that finishes, no lights are driven.

  GET /status — player, bridge, light assignments and cache summary
"""

import asyncio
import logging
import os
import signal
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import aiohttp
from aiohttp import web

# Ensure services/ is on the path for sibling imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from moodring.bridge_setup import BridgeSetup
from moodring.color_cache import ColorCache
from moodring.color_resolver import COLOR_API_URL, ColorResolver
from moodring.config import cfg, secret
from moodring.cover_art import LastFmCoverArt
from moodring.light_driver import LightDriver
from moodring.reactor import TrackChangeReactor
from moodring.sonos_watch import PlayerHandle, SonosWatcher

# Configuration
PLAYER_NAME = cfg("player", "name", default="family room")
POLL_INTERVAL = float(cfg("player", "poll_interval", default=1.0))
TOPOLOGY_INTERVAL = float(cfg("player", "topology_interval", default=30))
LIGHT_SETTINGS = cfg("lights", default=[])
ERROR_OR_NO_RESULT_COLORS = cfg("colors", "error", default=["#330033"])
NEXT_SONG_CACHING_ENABLED = bool(cfg("colors", "cache_next_track", default=True))
RETRY_FAILED_LOOKUPS = bool(cfg("colors", "retry_failed_lookups", default=False))
HTTP_TIMEOUT = float(cfg("http", "timeout", default=10))
STATUS_PORT = int(cfg("status", "port", default=8772))
VERBOSE_MODE = bool(cfg("verbose", default=True))

# Thread pool for blocking SoCo / phue calls
executor = ThreadPoolExecutor(max_workers=4)

logging.basicConfig(
    level=logging.INFO if VERBOSE_MODE else logging.WARNING,
    format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("sonos-moodring")


class Moodring:
    """Owns the player handle, color cache and light table; wires them together."""

    def __init__(self):
        self.player: PlayerHandle | None = None
        self.cache = ColorCache()
        self.driver = LightDriver(executor=executor)
        self.bridge_ip: str | None = None
        self._http_session: aiohttp.ClientSession | None = None
        self._runner: web.AppRunner | None = None
        self._watcher: SonosWatcher | None = None
        self._watch_task: asyncio.Task | None = None
        self._setup_task: asyncio.Task | None = None
        self.reactor: TrackChangeReactor | None = None

    # ── Notifications ──

    def on_topology_change(self, zones):
        if self.player is None:
            self.player = PlayerHandle.find(zones, PLAYER_NAME)
            if self.player:
                logger.info("Tracking player %s (coordinator %s)",
                            self.player.name, self.player.coordinator_uid)
            else:
                logger.info("Player '%s' not among discovered zones yet", PLAYER_NAME)
            return
        self.player.update(zones)

    def on_transport_state(self, state):
        self.reactor.on_transport_state(self.player, state)

    # ── Bridge ──

    async def setup_bridge(self):
        setup = BridgeSetup(
            self._http_session,
            LIGHT_SETTINGS,
            username=cfg("hue", "username", default="sonos-moodring"),
            app_description=cfg("hue", "app_description",
                                default="Display cover art colors from Sonos"),
            state_file=Path(cfg("hue", "state_file",
                                default="~/.sonos-moodring.json")).expanduser(),
            bridge_ip=cfg("hue", "ip"),
            discovery_url=cfg("hue", "discovery_url", default="https://discovery.meethue.com"),
            timeout=HTTP_TIMEOUT,
            executor=executor,
        )
        try:
            bridge, assignments = await setup.run()
        except Exception:
            logger.exception("Hue bridge setup failed — lights will not be driven")
            return
        if bridge is not None:
            self.bridge_ip = bridge.ip
            self.driver.attach(bridge, assignments)

    # ── Lifecycle ──

    async def start(self):
        self._http_session = aiohttp.ClientSession()

        cover_art = LastFmCoverArt(
            self._http_session, secret("LASTFM_API_KEY", "lastfm", "api_key"),
            timeout=HTTP_TIMEOUT)
        resolver = ColorResolver(
            self._http_session, cover_art,
            secret("COLOR_API_KEY", "colors", "api_key"),
            api_url=cfg("colors", "api_url", default=COLOR_API_URL),
            palette=cfg("colors", "palette", default="simple"),
            sort=cfg("colors", "sort", default="weight"),
            size=cfg("lastfm", "size", default="mega"),
            timeout=HTTP_TIMEOUT,
        )
        self.reactor = TrackChangeReactor(
            self.cache, resolver, self.driver, ERROR_OR_NO_RESULT_COLORS,
            cache_next_track=NEXT_SONG_CACHING_ENABLED,
            retry_failed_lookups=RETRY_FAILED_LOOKUPS,
        )

        if STATUS_PORT:
            app = web.Application()
            app.router.add_get("/status", self._handle_status)
            self._runner = web.AppRunner(app)
            await self._runner.setup()
            site = web.TCPSite(self._runner, "0.0.0.0", STATUS_PORT)
            await site.start()
            logger.info("Status on port %d", STATUS_PORT)

        self._setup_task = asyncio.create_task(self.setup_bridge())
        self._watcher = SonosWatcher(
            self.on_topology_change, self.on_transport_state,
            poll_interval=POLL_INTERVAL, topology_interval=TOPOLOGY_INTERVAL,
            executor=executor,
        )
        self._watch_task = asyncio.create_task(self._watcher.run())
        logger.info("Listening for '%s'", PLAYER_NAME)

    async def stop(self):
        if self._watcher:
            self._watcher.stop()
        for task in (self._watch_task, self._setup_task):
            if task and not task.done():
                task.cancel()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        if self._http_session:
            await self._http_session.close()
            self._http_session = None

    async def run(self):
        """Start, wait for SIGTERM/SIGINT, stop."""
        await self.start()
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    # ── Status ──

    def status(self) -> dict:
        return {
            "player": {
                "name": self.player.name,
                "coordinator": self.player.coordinator_uid,
            } if self.player else None,
            "bridge": self.bridge_ip,
            "assignments": {str(k): v for k, v in self.driver.assignments.items()},
            "cache": {
                "entries": len(self.cache),
                "pending": [str(k) for k in self.cache.pending_keys()],
            },
        }

    async def _handle_status(self, request: web.Request) -> web.Response:
        return web.json_response(self.status())


async def main():
    """Main entry point."""
    await Moodring().run()


if __name__ == "__main__":
    asyncio.run(main())
