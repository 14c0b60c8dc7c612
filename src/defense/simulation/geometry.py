"""Point math for the play field (logical 800x600 units, y grows downward)."""

from __future__ import annotations

import math

Point = tuple[float, float]


def distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def lerp_point(start: Point, end: Point, t: float) -> Point:
    """Linear interpolation from *start* to *end*; ``t`` is not clamped."""
    return (
        start[0] + (end[0] - start[0]) * t,
        start[1] + (end[1] - start[1]) * t,
    )
