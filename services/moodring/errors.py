"""Exceptions raised by the moodring collaborators."""


class MoodringError(Exception):
    """Base class for moodring errors."""


class CoverArtError(MoodringError):
    """The cover-art lookup failed (HTTP error, Last.fm error payload, bad JSON)."""


class BridgeRegistrationError(MoodringError):
    """The Hue bridge refused to register the application user."""
