"""Color helpers: hex parsing, Hue light state, color-tag response parsing."""

import colorsys
import re

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]{6}")


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    """Parse '#RRGGBB' (or 'RRGGBB') into an (r, g, b) triple.

    Raises ValueError for anything that isn't exactly six hex digits.
    """
    digits = color[1:] if color.startswith("#") else color
    if not _HEX_DIGITS.fullmatch(digits):
        raise ValueError(f"Not a #RRGGBB color: {color!r}")
    value = int(digits, 16)
    return (value >> 16) & 255, (value >> 8) & 255, value & 255


def rgb_to_hue_state(rgb: tuple[int, int, int]) -> dict:
    """Build a Hue v1 light state that turns the light on at this color.

    The v1 API has no RGB field, so the triple goes through HSV:
    hue 0-65535, sat 0-254, bri 1-254 (0 is not "off" on Hue, but close).
    """
    r, g, b = (c / 255.0 for c in rgb)
    h, s, v = colorsys.rgb_to_hsv(r, g, b)
    return {
        "on": True,
        "hue": int(round(h * 65535)),
        "sat": int(round(s * 254)),
        "bri": max(1, int(round(v * 254))),
    }


def usable_colors(body) -> list[str] | None:
    """Pull the ordered color list out of a color-tag response body.

    Returns None when the body has no usable tags (missing body, error
    payload, empty list, or tags without a color string).
    """
    if not isinstance(body, dict):
        return None
    tags = body.get("tags")
    if not isinstance(tags, list):
        return None
    colors = [t["color"] for t in tags
              if isinstance(t, dict) and isinstance(t.get("color"), str)]
    return colors or None
