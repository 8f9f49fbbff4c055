"""
Sonos Moodring: light Hue bulbs with the cover-art colors of what's playing.

Modules:
  - ``config``          – shared JSON config loader (``cfg()``)
  - ``sonos_watch``     – polls the Sonos household, emits notifications
  - ``reactor``         – reacts to transport-state changes, drives the cache
  - ``color_cache``     – process-lifetime (artist, album) -> colors cache
  - ``color_resolver``  – cover art -> color-tag service
  - ``cover_art``       – Last.fm album artwork lookup
  - ``light_driver``    – pushes colors to the lights assigned to each slot
  - ``bridge_setup``    – one-time Hue bridge discovery and registration
"""

from .errors import BridgeRegistrationError, CoverArtError, MoodringError

__all__ = [
    "BridgeRegistrationError",
    "CoverArtError",
    "MoodringError",
]
