"""
Process-lifetime color cache keyed by (artist, album).

An entry is in one of three states:
  - pending   – empty placeholder, a lookup is in flight
  - colors    – non-empty ordered list of '#RRGGBB' strings
  - sentinel  – the configured error colors (stored like any other list)

Entries are never evicted.  Only the event-loop thread touches the cache.
"""

from typing import NamedTuple


class TrackKey(NamedTuple):
    """Cache key for an album.  A pair, so ('AB', 'C') != ('A', 'BC')."""
    artist: str
    album: str

    @classmethod
    def of(cls, track) -> "TrackKey":
        return cls(track.artist or "", track.album or "")

    def __str__(self):
        return f"{self.album} by {self.artist}"


class ColorCache:
    """Mapping of TrackKey -> tuple of colors (empty tuple while pending)."""

    def __init__(self):
        self._entries: dict[TrackKey, tuple[str, ...]] = {}

    def get(self, key: TrackKey) -> list[str] | None:
        """Cached colors, or None when the key is unknown or still pending."""
        colors = self._entries.get(key)
        return list(colors) if colors else None

    def is_pending(self, key: TrackKey) -> bool:
        return key in self._entries and not self._entries[key]

    def reserve(self, key: TrackKey) -> bool:
        """Insert the pending placeholder.  False if the key is already present."""
        if key in self._entries:
            return False
        self._entries[key] = ()
        return True

    def store(self, key: TrackKey, colors: list[str]):
        self._entries[key] = tuple(colors)

    def release(self, key: TrackKey):
        """Drop a pending placeholder so the next sighting looks the key up again."""
        if self.is_pending(key):
            del self._entries[key]

    def pending_keys(self) -> list[TrackKey]:
        return [k for k, v in self._entries.items() if not v]

    def __contains__(self, key):
        return key in self._entries

    def __len__(self):
        return len(self._entries)
