"""
Album artwork lookup via the Last.fm album.getInfo API.

    art = LastFmCoverArt(session, api_key)
    url = await art.search("Muse", "Origin of Symmetry", size="mega")

search() returns the image URL, or None when Last.fm knows the album but has
no image for it.  Every other failure raises CoverArtError.
"""

import asyncio
import logging

import aiohttp

from .errors import CoverArtError

logger = logging.getLogger("moodring.cover_art")

LASTFM_API_URL = "https://ws.audioscrobbler.com/2.0/"


class LastFmCoverArt:
    """Finds album artwork URLs on Last.fm."""

    def __init__(self, session: aiohttp.ClientSession, api_key: str,
                 timeout: float = 10, api_url: str = LASTFM_API_URL):
        self._session = session
        self._api_key = api_key
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._api_url = api_url

    async def search(self, artist: str, album: str, size: str = "mega") -> str | None:
        params = {
            "method": "album.getinfo",
            "api_key": self._api_key,
            "artist": artist,
            "album": album,
            "autocorrect": "1",
            "format": "json",
        }
        try:
            async with self._session.get(
                self._api_url, params=params, timeout=self._timeout
            ) as resp:
                # Last.fm sends error payloads with 4xx codes; read them anyway
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise CoverArtError(f"Last.fm request failed: {e}") from e
        except ValueError as e:
            raise CoverArtError(f"Last.fm returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise CoverArtError(f"Unexpected Last.fm response: {data!r}")
        if "error" in data:
            raise CoverArtError(
                f"Last.fm error {data.get('error')}: {data.get('message', 'unknown')}")

        images = (data.get("album") or {}).get("image") or []
        return pick_image(images, size)


def pick_image(images: list, size: str) -> str | None:
    """Return the URL of the requested size, else the largest one available."""
    largest = None
    for image in images:
        if not isinstance(image, dict):
            continue
        url = image.get("#text") or ""
        if not url:
            continue
        if image.get("size") == size:
            return url
        largest = url  # Last.fm lists sizes smallest first
    if largest:
        logger.debug("No %s image, falling back to %s", size, largest)
    return largest
