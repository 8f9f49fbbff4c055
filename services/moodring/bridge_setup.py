"""
One-time Hue bridge setup.

  1. discover    – N-UPnP lookup (or the configured hue.ip)
  2. register    – reuse the app user if the bridge knows it, else register
  3. lights      – fetch the light inventory
  4. assignments – configured light names -> light ids per dominance slot

Each step stops the pipeline on failure; the caller ends up with no bridge
and an empty assignment table, so every light dispatch is skipped.
"""

import asyncio
import json
import logging
from pathlib import Path

import aiohttp
from phue import Bridge

from .errors import BridgeRegistrationError

logger = logging.getLogger("moodring.bridge")

DISCOVERY_URL = "https://discovery.meethue.com"
DEVICETYPE_MAX_LEN = 40


# ── Saved credentials ──

def load_state(path: Path) -> dict:
    """Load saved bridge credentials."""
    try:
        return json.loads(path.read_text())
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable state file %s: %s", path, e)
        return {}


def save_state(path: Path, state: dict):
    """Save bridge credentials so the next start skips registration."""
    try:
        path.write_text(json.dumps(state, indent=2))
        logger.info("Bridge credentials saved to %s", path)
    except OSError as e:
        logger.warning("Could not save bridge credentials to %s: %s", path, e)


# ── Steps ──

async def discover_bridges(session: aiohttp.ClientSession, url: str = DISCOVERY_URL,
                           timeout: float = 10) -> list[str]:
    """Return the internal IPs of the bridges found via N-UPnP."""
    try:
        async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
            resp.raise_for_status()
            found = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.warning("Bridge discovery failed: %s", e)
        return []

    logger.info("Hue bridges found: %s", found)
    if not isinstance(found, list):
        return []
    return [b["internalipaddress"] for b in found
            if isinstance(b, dict) and b.get("internalipaddress")]


def is_whitelisted(config) -> bool:
    """Unknown users get a reduced config without 'ipaddress'."""
    return isinstance(config, dict) and "ipaddress" in config


def register_user(bridge: Bridge, app_name: str, description: str) -> str:
    """POST /api to create an app user. Blocking. Returns the new username."""
    devicetype = f"{app_name}#{description}"[:DEVICETYPE_MAX_LEN]
    response = bridge.request("POST", "/api", {"devicetype": devicetype})
    for item in response if isinstance(response, list) else []:
        if not isinstance(item, dict):
            continue
        if "success" in item and item["success"].get("username"):
            return item["success"]["username"]
        if "error" in item:
            raise BridgeRegistrationError(item["error"].get("description", str(item["error"])))
    raise BridgeRegistrationError(f"Unexpected registration response: {response!r}")


def resolve_assignments(light_settings: list[dict], inventory: dict) -> dict[int, list[int]]:
    """Map each configured (light name, slot) to the ids of lights with that exact name."""
    assignments: dict[int, list[int]] = {}
    for setting in light_settings:
        slot = setting.get("slot")
        if not isinstance(slot, int):
            continue
        ids = assignments.setdefault(slot, [])
        for light_id, light in inventory.items():
            if isinstance(light, dict) and light.get("name") == setting.get("light"):
                ids.append(int(light_id))
    return assignments


# ── Pipeline ──

class BridgeSetup:
    """Runs discovery → registration → inventory → assignments once."""

    def __init__(self, session: aiohttp.ClientSession, light_settings: list[dict],
                 username: str, app_description: str, state_file: Path,
                 bridge_ip: str | None = None, discovery_url: str = DISCOVERY_URL,
                 timeout: float = 10, executor=None, bridge_factory=Bridge):
        self._session = session
        self._light_settings = light_settings
        self._username = username
        self._app_description = app_description
        self._state_file = state_file
        self._bridge_ip = bridge_ip
        self._discovery_url = discovery_url
        self._timeout = timeout
        self._executor = executor
        self._bridge_factory = bridge_factory

    async def _call(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn, *args)

    async def run(self):
        """Returns (bridge, assignments); bridge is None when setup stopped early."""
        if self._bridge_ip:
            ips = [self._bridge_ip]
        else:
            ips = await discover_bridges(self._session, self._discovery_url, self._timeout)
        if not ips:
            logger.warning("No Hue bridge found — lights will not be driven")
            return None, {}
        ip = ips[0]

        saved = load_state(self._state_file)
        username = saved.get("username") if saved.get("bridge_ip") == ip else None
        username = username or self._username

        bridge = self._bridge_factory(ip, username)
        config = await self._call(bridge.request, "GET", f"/api/{username}/config")
        if is_whitelisted(config):
            logger.info("Bridge %s knows user %s", ip, username)
        else:
            logger.info("User %s not registered on %s, registering "
                        "(press the link button if this fails)", username, ip)
            try:
                username = await self._call(
                    register_user, bridge, self._username, self._app_description)
            except BridgeRegistrationError as e:
                logger.error("Registration on %s failed: %s", ip, e)
                return None, {}
            logger.info("Created user %s", username)
            save_state(self._state_file, {"bridge_ip": ip, "username": username})
            bridge = self._bridge_factory(ip, username)

        inventory = await self._call(bridge.get_light)
        if not isinstance(inventory, dict):
            logger.warning("Light inventory unavailable: %s", inventory)
            inventory = {}
        logger.info("Lights: %s", {i: l.get("name") for i, l in inventory.items()
                                   if isinstance(l, dict)})

        assignments = resolve_assignments(self._light_settings, inventory)
        logger.info("Light assignments: %s", assignments)
        return bridge, assignments
