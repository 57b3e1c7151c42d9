"""Formatting helpers shared by the CLI and host applications."""

from __future__ import annotations

from typing import Optional

_COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


def format_distance(meters: float) -> str:
    """Format metres as ``"850 m"`` below one kilometre, else ``"12.3 km"``."""

    if meters < 1000:
        return f"{round(meters):d} m"
    return f"{meters / 1000:.1f} km"


def compass_direction(heading: Optional[float]) -> Optional[str]:
    """Map a heading in degrees to one of eight compass points."""

    if heading is None:
        return None
    index = int(((heading % 360) + 22.5) // 45) % len(_COMPASS_POINTS)
    return _COMPASS_POINTS[index]
