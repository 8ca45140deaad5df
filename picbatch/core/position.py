"""
Watermark placement helpers.

Positions reaching the pipeline are absolute top-left pixel coordinates in
source image space. Resolving a named anchor ("center", "bottom-right", ...)
to a coordinate happens once on the caller side, before the settings are
built, so `resolve_position` is deliberately a pass-through.
"""

from typing import Dict, Tuple

from .settings import Position

# Quick-placement presets offered by the editor's position buttons.
ANCHOR_PRESETS: Dict[str, Position] = {
    "top-left": Position(20, 20),
    "top-center": Position(200, 20),
    "top-right": Position(400, 20),
    "center": Position(200, 200),
    "bottom-left": Position(20, 400),
    "bottom-center": Position(200, 400),
    "bottom-right": Position(400, 400),
}


def resolve_position(
        container_width: float,
        container_height: float,
        content_width: float,
        content_height: float,
        requested: Position
) -> Tuple[float, float]:
    """Map a requested position to the top-left draw coordinate."""
    return requested.x, requested.y


def preset_position(name: str) -> Position:
    """
    Look up one of the editor's quick-placement presets.

    Raises:
        KeyError: If `name` is not a known preset.
    """
    key = name.strip().lower().replace("_", "-")
    if key not in ANCHOR_PRESETS:
        raise KeyError(f"Unknown position preset: {name!r}")
    return ANCHOR_PRESETS[key]
