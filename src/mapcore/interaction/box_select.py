"""Box select — draw a polygon, select the point features inside it.

Two-phase query:
  1. Coarse: points.in_extent(polygon extent) via the store's grid index.
  2. Fine: exact point-in-polygon on each candidate.

Selected points get the highlight style; their geometry is never touched.
A new polygon replaces the previous selection rather than adding to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from loguru import logger

from mapcore.geo.geometry import extent_of, point_in_polygon
from mapcore.geo.projection import to_geographic
from mapcore.layers.feature import Category, Feature
from mapcore.layers.store import FeatureStore
from mapcore.render.style import DRAWING_POLYGON, HIGHLIGHT_POINT, SELECTION_POLYGON

Coordinate = tuple[float, float]


@dataclass
class SelectionArea:
    """Result of one completed box draw."""

    polygon: list[Coordinate]                       # projected ring
    contained_count: int
    contained_ring_geographic: list[Coordinate]
    selected_ids: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return self.contained_count


class DrawInteraction:
    """An in-progress polygon drawing attached to the viewport.

    The rendering engine feeds vertices (projected) as the user clicks and
    calls finish() on the closing double-click.
    """

    style = DRAWING_POLYGON

    def __init__(self, on_complete: Callable[[list[Coordinate]], object]) -> None:
        self._on_complete = on_complete
        self.vertices: list[Coordinate] = []
        self.active = True

    def add_vertex(self, coord: Coordinate) -> None:
        if not self.active:
            return
        self.vertices.append((float(coord[0]), float(coord[1])))

    def finish(self):
        """Close the ring and hand it to the selector."""
        if not self.active:
            return None
        distinct = list(dict.fromkeys(self.vertices))
        if len(distinct) < 3:
            raise ValueError("A selection polygon needs at least 3 distinct vertices")
        ring = list(self.vertices)
        if ring[0] != ring[-1]:
            ring.append(ring[0])
        self.vertices = []
        return self._on_complete(ring)

    def abort(self) -> None:
        self.vertices = []
        self.active = False


class BoxSelector:
    """Owns the draw interaction, the selection polygon and the highlight."""

    def __init__(self, store: FeatureStore, renderer) -> None:
        self._points = store[Category.POINTS]
        self._polygons = store[Category.SELECTION]
        self._renderer = renderer
        self.interaction: Optional[DrawInteraction] = None
        self.area: Optional[SelectionArea] = None
        self._highlighted: list[Feature] = []

    @property
    def is_drawing(self) -> bool:
        return self.interaction is not None

    def start(self) -> DrawInteraction:
        """Attach a fresh draw interaction (replacing any existing one)."""
        if self.interaction is not None:
            self.stop()
        self.interaction = DrawInteraction(self.complete)
        self._renderer.add_interaction(self.interaction)
        return self.interaction

    def stop(self) -> None:
        """Detach the draw interaction and discard any in-progress polygon."""
        if self.interaction is None:
            return
        self.interaction.abort()
        self._renderer.remove_interaction(self.interaction)
        self.interaction = None

    def complete(self, ring: list[Coordinate]) -> SelectionArea:
        """Run the spatial query for a finished polygon ring (projected)."""
        self._reset_selection()

        polygon = Feature.polygon(ring, Category.SELECTION, style=SELECTION_POLYGON)
        self._polygons.add(polygon)

        closed = polygon.coordinates[0]
        candidates = self._points.in_extent(extent_of(closed))
        selected = [
            f for f in candidates
            if f.geometry_type == "Point" and point_in_polygon(f.coordinates, closed)
        ]
        self._points.set_styles(selected, HIGHLIGHT_POINT)
        self._highlighted = selected

        self.area = SelectionArea(
            polygon=list(closed),
            contained_count=len(selected),
            contained_ring_geographic=[to_geographic(c) for c in closed],
            selected_ids=[f.feature_id for f in selected],
        )
        logger.info(
            f"Box select: {len(selected)} of {len(candidates)} candidates "
            f"({len(self._points)} points total)"
        )
        self._renderer.request_render()
        return self.area

    def _reset_selection(self) -> None:
        self._polygons.clear()
        if self._highlighted:
            self._points.set_styles(self._highlighted, None)
        self._highlighted = []
        self.area = None

    def clear_selection(self) -> None:
        """Remove the polygon and every highlight. Idempotent."""
        self._polygons.clear()
        styled = [f for f in self._points.all() if f.style is not None]
        if styled:
            self._points.set_styles(styled, None)
        self._highlighted = []
        self.area = None
