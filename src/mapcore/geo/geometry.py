"""Planar geometry on projected coordinates.

Extents, point-in-polygon, and arc-length interpolation along a path.
Everything operates on (x, y) tuples in EPSG:3857 metres; no Shapely
dependency.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

Point = tuple[float, float]

# Tolerance for treating a point as lying on a polygon edge (metres)
_EDGE_EPSILON = 1e-9


@dataclass(frozen=True)
class Extent:
    """Axis-aligned bounding box: (min_x, min_y, max_x, max_y)."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> Point:
        return ((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    def is_empty(self) -> bool:
        return self.min_x > self.max_x or self.min_y > self.max_y

    def contains_point(self, point: Point) -> bool:
        x, y = point[0], point[1]
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def intersects(self, other: Extent) -> bool:
        return (
            self.min_x <= other.max_x
            and self.max_x >= other.min_x
            and self.min_y <= other.max_y
            and self.max_y >= other.min_y
        )

    def buffer(self, amount: float) -> Extent:
        return Extent(
            self.min_x - amount, self.min_y - amount,
            self.max_x + amount, self.max_y + amount,
        )

    def union(self, other: Extent) -> Extent:
        if self.is_empty():
            return other
        if other.is_empty():
            return self
        return Extent(
            min(self.min_x, other.min_x), min(self.min_y, other.min_y),
            max(self.max_x, other.max_x), max(self.max_y, other.max_y),
        )


EMPTY_EXTENT = Extent(math.inf, math.inf, -math.inf, -math.inf)


def iter_positions(nested):
    """Yield every (x, y) position in a nested GeoJSON coordinate array."""
    if nested and isinstance(nested[0], (int, float)):
        yield (nested[0], nested[1])
        return
    for item in nested:
        yield from iter_positions(item)


def extent_of(nested) -> Extent:
    """Bounding extent of any nested coordinate array (EMPTY_EXTENT if none)."""
    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for x, y in iter_positions(nested):
        if x < min_x:
            min_x = x
        if x > max_x:
            max_x = x
        if y < min_y:
            min_y = y
        if y > max_y:
            max_y = y
    return Extent(min_x, min_y, max_x, max_y)


def _on_segment(px: float, py: float, ax: float, ay: float, bx: float, by: float) -> bool:
    cross = (bx - ax) * (py - ay) - (by - ay) * (px - ax)
    scale = max(1.0, math.hypot(bx - ax, by - ay))
    if abs(cross) > _EDGE_EPSILON * scale:
        return False
    return (
        min(ax, bx) - _EDGE_EPSILON <= px <= max(ax, bx) + _EDGE_EPSILON
        and min(ay, by) - _EDGE_EPSILON <= py <= max(ay, by) + _EDGE_EPSILON
    )


def point_in_polygon(point: Point, ring: list[Point]) -> bool:
    """Ray-casting point-in-polygon test; points on an edge count as inside.

    Casts a horizontal ray from the point to +infinity and counts how many
    ring edges it crosses. Odd count = inside. The ring may or may not
    repeat its first vertex at the end.
    """
    n = len(ring)
    if n < 3:
        return False
    px, py = point[0], point[1]
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if _on_segment(px, py, xi, yi, xj, yj):
            return True
        if ((yi > py) != (yj > py)) and (
            px < (xj - xi) * (py - yi) / (yj - yi) + xi
        ):
            inside = not inside
        j = i
    return inside


def line_length(path: list[Point]) -> float:
    """Total length of a polyline."""
    return sum(
        math.hypot(b[0] - a[0], b[1] - a[1])
        for a, b in zip(path, path[1:])
    )


def coordinate_at(path: list[Point], fraction: float) -> Point:
    """Point at *fraction* (0..1) of the arc length along *path*.

    Fractions outside [0, 1] are clamped. A single-point path returns that
    point; a zero-length path returns its first point.
    """
    if not path:
        raise ValueError("coordinate_at() requires a non-empty path")
    if len(path) == 1:
        return (path[0][0], path[0][1])

    fraction = max(0.0, min(1.0, fraction))
    total = line_length(path)
    if total == 0.0:
        return (path[0][0], path[0][1])

    target = fraction * total
    travelled = 0.0
    for a, b in zip(path, path[1:]):
        seg = math.hypot(b[0] - a[0], b[1] - a[1])
        if seg > 0.0 and travelled + seg >= target:
            t = (target - travelled) / seg
            return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)
        travelled += seg
    last = path[-1]
    return (last[0], last[1])


def ease_out(t: float) -> float:
    """Cubic ease-out: fast start, decelerating towards 1."""
    t = max(0.0, min(1.0, t))
    return 1.0 - (1.0 - t) ** 3
