"""Feature dataclass and store categories.

All coordinates are stored in projected (EPSG:3857) space, GeoJSON
ordered: Point (x, y), LineString [(x, y), ...], Polygon [[(x, y), ...]].
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from typing import Optional

from mapcore.geo.geometry import Extent, extent_of
from mapcore.render.style import Style

GEOMETRY_TYPES = (
    "Point", "LineString", "Polygon",
    "MultiPoint", "MultiLineString", "MultiPolygon",
)


class Category(str, enum.Enum):
    """Feature store categories — one layer each."""

    POINTS = "points"
    ROUTE = "route"
    HEAT = "heat"
    SELECTION = "selection"
    GEOJSON = "geojson"


def new_feature_id(prefix: str = "f") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@dataclass
class Feature:
    """A single geometric entity within one store category.

    Attributes:
        feature_id: Unique identifier for this feature.
        geometry_type: One of GEOMETRY_TYPES.
        coordinates: Projected coordinate array for the geometry type.
        category: Store category that owns this feature.
        weight: Optional numeric attribute (heat intensity).
        style: Optional visual override; None means the layer default.
        properties: Arbitrary key-value metadata.
    """

    feature_id: str
    geometry_type: str
    coordinates: list | tuple
    category: Category = Category.POINTS
    weight: Optional[float] = None
    style: Optional[Style] = None
    properties: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.geometry_type not in GEOMETRY_TYPES:
            raise ValueError(f"Unsupported geometry type: {self.geometry_type}")

    @classmethod
    def point(cls, coord, category: Category = Category.POINTS, **kwargs) -> Feature:
        kwargs.setdefault("feature_id", new_feature_id(category.value))
        return cls(
            geometry_type="Point",
            coordinates=(float(coord[0]), float(coord[1])),
            category=category,
            **kwargs,
        )

    @classmethod
    def line(cls, coords, category: Category = Category.ROUTE, **kwargs) -> Feature:
        kwargs.setdefault("feature_id", new_feature_id(category.value))
        return cls(
            geometry_type="LineString",
            coordinates=[(float(c[0]), float(c[1])) for c in coords],
            category=category,
            **kwargs,
        )

    @classmethod
    def polygon(cls, ring, category: Category = Category.SELECTION, **kwargs) -> Feature:
        kwargs.setdefault("feature_id", new_feature_id(category.value))
        return cls(
            geometry_type="Polygon",
            coordinates=[[(float(c[0]), float(c[1])) for c in ring]],
            category=category,
            **kwargs,
        )

    def extent(self) -> Extent:
        return extent_of(self.coordinates)

    @property
    def first_coordinate(self) -> tuple[float, float]:
        coords = self.coordinates
        while not isinstance(coords[0], (int, float)):
            coords = coords[0]
        return (coords[0], coords[1])
