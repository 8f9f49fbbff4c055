"""
ColorResolver — artist/album in, raw color-tag response out.

    resolver = ColorResolver(session, cover_art, api_key)
    body = await resolver.resolve("Muse", "Origin of Symmetry")

resolve() returns:
  - None  when the cover-art lookup failed (the caller gets no result at all)
  - {}    when there is no artwork, or the color service call failed
  - the decoded JSON body of the color-tag service otherwise
"""

import asyncio
import logging

import aiohttp

from .errors import CoverArtError

logger = logging.getLogger("moodring.resolver")

COLOR_API_URL = "https://apicloud-colortag.p.mashape.com/tag-url.json"


class ColorResolver:
    """Looks up cover art, then asks the color-tag service for its palette."""

    def __init__(self, session: aiohttp.ClientSession, cover_art, api_key: str,
                 api_url: str = COLOR_API_URL, palette: str = "simple",
                 sort: str = "weight", size: str = "mega", timeout: float = 10):
        self._session = session
        self._cover_art = cover_art
        self._api_key = api_key
        self._api_url = api_url
        self._palette = palette
        self._sort = sort
        self._size = size
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def resolve(self, artist: str, album: str) -> dict | None:
        try:
            artwork_url = await self._cover_art.search(artist, album, size=self._size)
        except CoverArtError as e:
            logger.warning("Cover art lookup failed for %s by %s: %s", album, artist, e)
            return None

        if not artwork_url:
            logger.info("Last.fm has no artwork for %s by %s", album, artist)
            return {}

        logger.info("Calling color API for %s", artwork_url)
        return await self.fetch_tags(artwork_url)

    async def fetch_tags(self, artwork_url: str) -> dict:
        """GET the color tags for an image URL. Any failure yields {}."""
        params = {"palette": self._palette, "sort": self._sort, "url": artwork_url}
        headers = {"X-Mashape-Key": self._api_key, "Accept": "application/json"}
        try:
            async with self._session.get(
                self._api_url, params=params, headers=headers, timeout=self._timeout
            ) as resp:
                if resp.status != 200:
                    logger.warning("Color API returned HTTP %d", resp.status)
                    return {}
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Color API request failed: %s", e)
            return {}
        except ValueError as e:
            logger.warning("Color API returned invalid JSON: %s", e)
            return {}

        return body if isinstance(body, dict) else {}
