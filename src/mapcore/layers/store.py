"""FeatureStore — per-category containers of projected features.

Each category is a FeatureLayer holding features in insertion order plus a
coarse uniform-grid index over point features.  ``in_extent()`` returns
every feature whose grid cell overlaps the query extent: a superset that
callers narrow with an exact geometric test.

Every mutation bumps ``revision`` and notifies listeners with a
StoreChange so derived state (clusters, renderer mirror) can recompute.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from mapcore.events import EventBus, Subscription
from mapcore.geo.geometry import EMPTY_EXTENT, Extent
from mapcore.layers.feature import Category, Feature
from mapcore.render.style import Style

# Grid cell edge in projected metres (~1 km at the equator)
DEFAULT_CELL_SIZE = 1000.0

ADD = "add"
REMOVE = "remove"
STYLE = "style"
GEOMETRY = "geometry"

Cell = tuple[int, int]


@dataclass
class StoreChange:
    """Notification payload: what happened to which features."""

    action: str
    category: Category
    features: list[Feature]


class FeatureLayer:
    """Features of one category with a coarse spatial index."""

    def __init__(self, category: Category, cell_size: float = DEFAULT_CELL_SIZE) -> None:
        self.category = category
        self._cell_size = cell_size
        self._features: dict[str, Feature] = {}
        self._cells: dict[Cell, set[str]] = {}
        self._feature_cell: dict[str, Cell] = {}
        self._unindexed: set[str] = set()      # non-point geometries
        self._bus = EventBus()
        self.revision = 0

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(list(self._features.values()))

    def __contains__(self, feature_id: str) -> bool:
        return feature_id in self._features

    # -- notifications -------------------------------------------------------

    def subscribe(self, listener: Callable[[StoreChange], None]) -> Subscription:
        return self._bus.subscribe("change", listener)

    def _changed(self, action: str, features: list[Feature]) -> None:
        self.revision += 1
        self._bus.publish("change", StoreChange(action, self.category, features))

    # -- index ---------------------------------------------------------------

    def _cell_of(self, x: float, y: float) -> Cell:
        return (math.floor(x / self._cell_size), math.floor(y / self._cell_size))

    def _index(self, feature: Feature) -> None:
        if feature.geometry_type == "Point":
            x, y = feature.coordinates[0], feature.coordinates[1]
            cell = self._cell_of(x, y)
            self._cells.setdefault(cell, set()).add(feature.feature_id)
            self._feature_cell[feature.feature_id] = cell
        else:
            self._unindexed.add(feature.feature_id)

    def _unindex(self, feature_id: str) -> None:
        cell = self._feature_cell.pop(feature_id, None)
        if cell is not None:
            members = self._cells.get(cell)
            if members is not None:
                members.discard(feature_id)
                if not members:
                    del self._cells[cell]
        self._unindexed.discard(feature_id)

    # -- mutation ------------------------------------------------------------

    def add(self, feature: Feature) -> Feature:
        """Add a feature; re-adding the same id replaces it."""
        self.add_many([feature])
        return feature

    def add_many(self, features: list[Feature]) -> None:
        if not features:
            return
        for feature in features:
            feature.category = self.category
            if feature.feature_id in self._features:
                self._unindex(feature.feature_id)
            self._features[feature.feature_id] = feature
            self._index(feature)
        self._changed(ADD, list(features))

    def remove(self, feature_id: str) -> Optional[Feature]:
        feature = self._features.pop(feature_id, None)
        if feature is None:
            return None
        self._unindex(feature_id)
        self._changed(REMOVE, [feature])
        return feature

    def clear(self) -> None:
        """Remove every feature. Idempotent: clearing an empty layer is silent."""
        if not self._features:
            return
        removed = list(self._features.values())
        self._features.clear()
        self._cells.clear()
        self._feature_cell.clear()
        self._unindexed.clear()
        self._changed(REMOVE, removed)

    def set_style(self, feature: Feature, style: Optional[Style]) -> None:
        """Override (or with None, reset) a feature's style. Geometry untouched."""
        if feature.feature_id not in self._features:
            return
        feature.style = style
        self._changed(STYLE, [feature])

    def set_styles(self, features: list[Feature], style: Optional[Style]) -> None:
        owned = [f for f in features if f.feature_id in self._features]
        if not owned:
            return
        for feature in owned:
            feature.style = style
        self._changed(STYLE, owned)

    def set_point(self, feature: Feature, coord) -> None:
        """Move a point feature, keeping the index consistent."""
        if feature.feature_id not in self._features:
            return
        self._unindex(feature.feature_id)
        feature.coordinates = (float(coord[0]), float(coord[1]))
        self._index(feature)
        self._changed(GEOMETRY, [feature])

    # -- queries -------------------------------------------------------------

    def all(self) -> list[Feature]:
        return list(self._features.values())

    def get(self, feature_id: str) -> Optional[Feature]:
        return self._features.get(feature_id)

    def in_extent(self, extent: Extent) -> list[Feature]:
        """Coarse candidates for *extent* (superset of the exact answer)."""
        if extent.is_empty() or not self._features:
            return []
        min_cx, min_cy = self._cell_of(extent.min_x, extent.min_y)
        max_cx, max_cy = self._cell_of(extent.max_x, extent.max_y)

        ids: set[str] = set()
        n_cells = (max_cx - min_cx + 1) * (max_cy - min_cy + 1)
        if n_cells > len(self._cells):
            # Extent spans more cells than are occupied, walk occupied ones
            for (cx, cy), members in self._cells.items():
                if min_cx <= cx <= max_cx and min_cy <= cy <= max_cy:
                    ids.update(members)
        else:
            for cx in range(min_cx, max_cx + 1):
                for cy in range(min_cy, max_cy + 1):
                    ids.update(self._cells.get((cx, cy), ()))

        for fid in self._unindexed:
            if self._features[fid].extent().intersects(extent):
                ids.add(fid)

        # Preserve insertion order
        return [f for fid, f in self._features.items() if fid in ids]

    def extent(self) -> Extent:
        result = EMPTY_EXTENT
        for feature in self._features.values():
            result = result.union(feature.extent())
        return result


class FeatureStore:
    """One FeatureLayer per Category."""

    def __init__(self, cell_size: float = DEFAULT_CELL_SIZE) -> None:
        self._layers = {cat: FeatureLayer(cat, cell_size) for cat in Category}

    def __getitem__(self, category: Category) -> FeatureLayer:
        return self._layers[Category(category)]

    def layers(self) -> list[FeatureLayer]:
        return list(self._layers.values())

    def subscribe(self, listener: Callable[[StoreChange], None]) -> list[Subscription]:
        """Subscribe *listener* to every category."""
        return [layer.subscribe(listener) for layer in self._layers.values()]

    def total(self) -> int:
        return sum(len(layer) for layer in self._layers.values())

    def clear_all(self) -> None:
        for layer in self._layers.values():
            layer.clear()
