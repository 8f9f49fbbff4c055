"""
LightDriver — pushes an ordered color list onto the Hue lights.

Color i goes to every light assigned to dominance slot i.  Each light
command is its own fire-and-forget task; the outcome is only logged.
"""

import asyncio
import logging

from .colors import hex_to_rgb, rgb_to_hue_state

logger = logging.getLogger("moodring.lights")


class LightDriver:
    """Maps dominance slots to lights and sends "on + color" commands."""

    def __init__(self, bridge=None, assignments: dict[int, list[int]] | None = None,
                 executor=None):
        self.bridge = bridge
        self.assignments = assignments or {}
        self._executor = executor
        self._tasks: set[asyncio.Task] = set()

    def attach(self, bridge, assignments: dict[int, list[int]]):
        """Install the bridge and assignment table once bridge setup finishes."""
        self.bridge = bridge
        self.assignments = assignments

    def dispatch(self, colors: list[str]) -> list[asyncio.Task]:
        """Schedule one command per assigned light. Returns the tasks started."""
        tasks = []
        if self.bridge is None:
            return tasks

        for slot, color in enumerate(colors):
            light_ids = self.assignments.get(slot)
            if not light_ids:
                continue
            try:
                state = rgb_to_hue_state(hex_to_rgb(color))
            except ValueError as e:
                logger.warning("Skipping slot %d: %s", slot, e)
                continue
            for light_id in light_ids:
                task = asyncio.create_task(self._set_light(light_id, state))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
                tasks.append(task)
        return tasks

    async def _set_light(self, light_id: int, state: dict):
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(
                self._executor, self.bridge.set_light, light_id, state)
        except Exception as e:
            logger.error("Light %s: command failed: %s", light_id, e)
            return
        if _has_error(result):
            logger.error("Light %s: bridge rejected %s: %s", light_id, state, result)
        else:
            logger.info("Light %s: %s", light_id, result)


def _has_error(result) -> bool:
    """phue returns per-attribute [{"success": ...} | {"error": ...}] lists."""
    if not isinstance(result, list):
        return False
    for item in result:
        if isinstance(item, dict) and "error" in item:
            return True
        # set_light with a list of ids nests one result list per light
        if isinstance(item, list) and _has_error(item):
            return True
    return False
