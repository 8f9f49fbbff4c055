"""
TrackChangeReactor — turns "now playing" notifications into light colors.

For a PLAYING notification from the tracked coordinator:

  current track   cached      → dispatch the cached colors
                  never seen  → reserve, resolve in the background, store
                                and dispatch (sentinel if no usable tags)
                  pending     → nothing; one lookup per key at a time
  next track      not cached  → reserve, resolve in the background, store
                                (never touches the lights)

A cover-art failure leaves the key pending.  With retry_failed_lookups the
placeholder is released instead, so the next notification tries again.
"""

import asyncio
import logging

from .color_cache import ColorCache, TrackKey
from .colors import usable_colors
from .sonos_watch import PLAYING, TransportState

logger = logging.getLogger("moodring.reactor")


class TrackChangeReactor:

    def __init__(self, cache: ColorCache, resolver, driver, error_colors: list[str],
                 cache_next_track: bool = True, retry_failed_lookups: bool = False):
        self.cache = cache
        self.resolver = resolver
        self.driver = driver
        self.error_colors = list(error_colors)
        self.cache_next_track = cache_next_track
        self.retry_failed_lookups = retry_failed_lookups
        self._tasks: set[asyncio.Task] = set()

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def on_transport_state(self, player, msg: TransportState) -> list[asyncio.Task]:
        """Handle one notification.  Returns the background tasks it started."""
        if (player is None or msg.uid != player.coordinator_uid
                or msg.zone_state != PLAYING):
            return []

        tasks = []

        if msg.current_track is not None:
            key = TrackKey.of(msg.current_track)
            colors = self.cache.get(key)
            if colors:
                logger.info("Got cached results for %s", key)
                self.driver.dispatch(colors)
            elif self.cache.reserve(key):
                tasks.append(self._spawn(self._resolve(key, show=True)))
            else:
                logger.debug("Lookup for %s already in flight", key)

        if msg.next_track is None or not self.cache_next_track:
            return tasks
        next_key = TrackKey.of(msg.next_track)
        if self.cache.reserve(next_key):
            tasks.append(self._spawn(self._resolve(next_key, show=False)))
        return tasks

    async def _resolve(self, key: TrackKey, show: bool):
        label = "" if show else "next album "
        try:
            body = await self.resolver.resolve(key.artist, key.album)
        except Exception:
            logger.exception("Color lookup for %s%s crashed", label, key)
            body = None
        if body is None:
            if self.retry_failed_lookups:
                self.cache.release(key)
            return

        colors = usable_colors(body)
        if colors is None:
            logger.info("No artwork found for %s%s", label, key)
            colors = self.error_colors
        elif show:
            logger.info("Fetched color for %s", key)
        else:
            logger.info("Cached next album %s", key)

        self.cache.store(key, colors)
        if show:
            self.driver.dispatch(colors)
