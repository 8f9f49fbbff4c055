"""
Shared configuration loader for Sonos Moodring.

Loads a single JSON config file.  Search order:
  1. /etc/sonos-moodring/config.json   (system install)
  2. config.json                       (CWD — handy for local dev)
  3. ../../config/default.json         (repo fallback)

Secrets (LASTFM_API_KEY, COLOR_API_KEY) stay in environment variables;
secret() falls back to the config file when the variable is unset.

Usage:
    from moodring.config import cfg

    player_name  = cfg("player", "name", default="family room")
    cache_next   = cfg("colors", "cache_next_track", default=True)
    lights       = cfg("lights", default=[])  # returns the whole list
"""

import json
import logging
import os
import re

logger = logging.getLogger(__name__)

_config: dict | None = None

_SEARCH_PATHS = [
    "/etc/sonos-moodring/config.json",
    "config.json",
    os.path.join(os.path.dirname(__file__), "..", "..", "config", "default.json"),
]

_HEX_COLOR = re.compile(r"^#?[0-9a-fA-F]{6}$")


def _validate(config: dict, path: str) -> None:
    """Warn about missing or suspicious config values."""
    player = config.get("player") or {}
    if not player.get("name"):
        logger.warning("Config %s: missing player.name — no Sonos zone will be tracked", path)
    lights = config.get("lights")
    if not lights:
        logger.warning("Config %s: missing 'lights' — nothing will light up", path)
    for entry in lights or []:
        if not isinstance(entry, dict) or not entry.get("light"):
            logger.warning("Config %s: light entry without a name: %r", path, entry)
            continue
        slot = entry.get("slot")
        if not isinstance(slot, int) or isinstance(slot, bool):
            logger.warning("Config %s: light '%s' has non-integer slot %r",
                           path, entry["light"], slot)
    colors = config.get("colors") or {}
    for color in colors.get("error") or []:
        if not isinstance(color, str) or not _HEX_COLOR.match(color):
            logger.warning("Config %s: colors.error entry %r is not #RRGGBB", path, color)


def load_config() -> dict:
    """Load config from the first JSON file found. Cached after first call."""
    global _config
    if _config is not None:
        return _config

    for path in _SEARCH_PATHS:
        try:
            with open(path) as f:
                _config = json.load(f)
                logger.info("Config loaded from %s", path)
                _validate(_config, path)
                return _config
        except FileNotFoundError:
            continue
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in %s: %s", path, e)
            continue

    logger.warning("No config.json found — using empty config")
    _config = {}
    return _config


def cfg(section: str, key: str | None = None, *, default=None):
    """Read a config value.

    cfg("verbose")                        → config["verbose"]
    cfg("player", "name")                 → config["player"]["name"]
    cfg("http", "timeout", default=10)    → config["http"]["timeout"] or 10
    """
    config = load_config()
    val = config.get(section)
    if key is None:
        return val if val is not None else default
    if isinstance(val, dict):
        return val.get(key, default)
    return default


def secret(env_var: str, section: str, key: str) -> str:
    """Read a secret from the environment, falling back to the config file."""
    return os.getenv(env_var) or cfg(section, key, default="") or ""


def reload_config():
    """Force re-read from disk (for testing or hot-reload)."""
    global _config
    _config = None
    return load_config()
