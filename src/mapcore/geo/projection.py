"""Coordinate transforms between geographic and projected map space.

Convention:
    - Geographic coordinates are (lng, lat) in degrees, EPSG:4326.
    - Projected coordinates are (x, y) in spherical Web Mercator metres,
      EPSG:3857, the viewport's internal space.
    - Both are GeoJSON-ordered: x/lng first.

All functions are pure; nothing here knows about the viewport.
"""

from __future__ import annotations

import math
from typing import Callable

EARTH_RADIUS = 6_378_137.0
HALF_SIZE = math.pi * EARTH_RADIUS          # 20037508.342789244
MAX_LATITUDE = 85.0511287798066             # Web Mercator cut-off

Coordinate = tuple[float, float]


def to_projected(coord) -> Coordinate:
    """Convert (lng, lat) degrees to EPSG:3857 (x, y) metres.

    Latitude is clamped to the Web Mercator range so the poles project to
    a finite value.
    """
    lng, lat = float(coord[0]), float(coord[1])
    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
    x = EARTH_RADIUS * math.radians(lng)
    y = EARTH_RADIUS * math.log(math.tan(math.pi / 4 + math.radians(lat) / 2))
    return (x, y)


def to_geographic(coord) -> Coordinate:
    """Convert EPSG:3857 (x, y) metres back to (lng, lat) degrees."""
    x, y = float(coord[0]), float(coord[1])
    lng = math.degrees(x / EARTH_RADIUS)
    lat = math.degrees(2 * math.atan(math.exp(y / EARTH_RADIUS)) - math.pi / 2)
    return (lng, lat)


def is_valid_geographic(coord) -> bool:
    """True for a finite (lng, lat) pair inside [-180, 180] x [-90, 90]."""
    try:
        lng, lat = float(coord[0]), float(coord[1])
    except (TypeError, ValueError, IndexError):
        return False
    if not (math.isfinite(lng) and math.isfinite(lat)):
        return False
    return -180.0 <= lng <= 180.0 and -90.0 <= lat <= 90.0


def transform_coordinates(nested, fn: Callable[[tuple], Coordinate]):
    """Apply *fn* to every position in a nested GeoJSON coordinate array.

    A position is recognised as a sequence whose first item is a number.
    Returns lists (not tuples) for nested levels and tuples for positions.
    """
    if nested and isinstance(nested[0], (int, float)):
        return fn(nested)
    return [transform_coordinates(item, fn) for item in nested]
