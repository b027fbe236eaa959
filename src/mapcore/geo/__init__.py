"""Coordinate transform adapter, planar geometry, and the viewport model."""

from mapcore.geo.geometry import Extent, coordinate_at, ease_out, extent_of, line_length, point_in_polygon
from mapcore.geo.projection import to_geographic, to_projected
from mapcore.geo.viewport import Viewport

__all__ = [
    "Extent",
    "Viewport",
    "coordinate_at",
    "ease_out",
    "extent_of",
    "line_length",
    "point_in_polygon",
    "to_geographic",
    "to_projected",
]
