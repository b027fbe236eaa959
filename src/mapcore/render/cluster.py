"""Cluster aggregation and the pulsing "radar ping" cluster style.

ClusterAggregator groups point features by screen-space proximity:
  Two points closer than ``distance`` pixels at the current viewport
  resolution are linked, and a ClusterGroup is a connected component of
  that relation (single linkage).  Shrinking the distance can only remove
  links, so groups only ever split; distance 0 yields singletons.

  Groups are derived state.  groups() recomputes whenever the point
  layer's revision, the distance, or the viewport resolution differs from
  the inputs of the cached result.

pulse_style(n, now_ms) is a pure function of group size and time.
ClusterPulse re-evaluates it for every group on every frame while
clustering is enabled.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from mapcore.geo.viewport import Viewport
from mapcore.layers.feature import Feature
from mapcore.layers.store import FeatureLayer
from mapcore.render.style import (
    BLUE,
    DEFAULT_POINT,
    TRANSPARENT,
    WHITE,
    Circle,
    Fill,
    Stroke,
    Style,
    Text,
    rgba,
)

PULSE_PERIOD_MS = 4000.0
PULSE_RINGS = 3
PULSE_STAGGER = 0.33
PULSE_SPREAD_PX = 70.0
PULSE_MAX_OPACITY = 0.6
MAX_BASE_RADIUS = 25.0


@dataclass
class ClusterGroup:
    """Point features merged into one rendered cluster."""

    features: list[Feature]
    center: tuple[float, float]

    @property
    def size(self) -> int:
        return len(self.features)


class _UnionFind:
    def __init__(self, n: int) -> None:
        self.parent = list(range(n))

    def find(self, i: int) -> int:
        while self.parent[i] != i:
            self.parent[i] = self.parent[self.parent[i]]
            i = self.parent[i]
        return i

    def union(self, a: int, b: int) -> None:
        ra, rb = self.find(a), self.find(b)
        if ra != rb:
            self.parent[max(ra, rb)] = min(ra, rb)


def group_points(features: list[Feature], distance_px: float,
                 resolution: float) -> list[ClusterGroup]:
    """Single-linkage grouping of point features by pixel distance.

    Args:
        features: Point features in projected coordinates.
        distance_px: Link threshold in screen pixels (strictly less than).
        resolution: Viewport metres per pixel.

    Returns:
        Groups ordered by their first member's position in *features*.
    """
    points = [f for f in features if f.geometry_type == "Point"]
    n = len(points)
    if n == 0:
        return []

    uf = _UnionFind(n)
    if distance_px > 0 and resolution > 0:
        threshold = distance_px * resolution
        cells: dict[tuple[int, int], list[int]] = {}
        coords = [f.coordinates for f in points]
        for i, (x, y) in enumerate(coords):
            cx, cy = math.floor(x / threshold), math.floor(y / threshold)
            for dx in (-1, 0, 1):
                for dy in (-1, 0, 1):
                    for j in cells.get((cx + dx, cy + dy), ()):
                        ox, oy = coords[j]
                        if math.hypot(x - ox, y - oy) < threshold:
                            uf.union(i, j)
            cells.setdefault((cx, cy), []).append(i)

    members: dict[int, list[Feature]] = {}
    for i, feature in enumerate(points):
        members.setdefault(uf.find(i), []).append(feature)

    groups = []
    for root in sorted(members):
        group = members[root]
        cx = sum(f.coordinates[0] for f in group) / len(group)
        cy = sum(f.coordinates[1] for f in group) / len(group)
        groups.append(ClusterGroup(features=group, center=(cx, cy)))
    return groups


class ClusterAggregator:
    """Lazily recomputed clusters over the point layer."""

    def __init__(self, layer: FeatureLayer, viewport: Viewport,
                 distance: float = 40.0) -> None:
        self._layer = layer
        self._viewport = viewport
        self._distance = self._validate(distance)
        self._cache_key: Optional[tuple] = None
        self._groups: list[ClusterGroup] = []

    @staticmethod
    def _validate(distance: float) -> float:
        distance = float(distance)
        if distance < 0 or not math.isfinite(distance):
            raise ValueError(f"Cluster distance must be >= 0, got {distance}")
        return distance

    @property
    def distance(self) -> float:
        return self._distance

    def update_distance(self, distance: float) -> None:
        self._distance = self._validate(distance)
        self._cache_key = None
        logger.debug(f"Cluster distance set to {self._distance}px")

    def invalidate(self) -> None:
        self._cache_key = None

    def groups(self) -> list[ClusterGroup]:
        key = (self._layer.revision, self._distance, self._viewport.resolution)
        if key != self._cache_key:
            self._groups = group_points(
                self._layer.all(), self._distance, self._viewport.resolution,
            )
            self._cache_key = key
        return self._groups


def pulse_style(n: int, now_ms: float) -> list[Style]:
    """Styles for a cluster of *n* points at time *now_ms*.

    A single point renders as the plain marker.  Larger groups get a solid
    disc, a count label, and three staggered rings that expand from the
    disc edge while fading out over a 4 s period.
    """
    if n <= 1:
        return [DEFAULT_POINT]

    base_radius = min(n * 3.5, MAX_BASE_RADIUS)
    max_radius = base_radius + PULSE_SPREAD_PX

    styles = [
        Style(image=Circle(radius=base_radius, fill=Fill(BLUE), stroke=Stroke(WHITE, 2))),
        Style(
            image=Circle(radius=base_radius, fill=Fill(TRANSPARENT)),
            text=Text(text=str(n), fill=Fill(WHITE), stroke=Stroke(BLUE, 3)),
        ),
    ]

    cycle = (now_ms % PULSE_PERIOD_MS) / PULSE_PERIOD_MS
    for i in range(PULSE_RINGS):
        phase = (cycle + i * PULSE_STAGGER) % 1
        eased = phase ** 2
        radius = base_radius + (max_radius - base_radius) * eased
        opacity = max(0.0, PULSE_MAX_OPACITY * (1 - eased))
        styles.append(Style(image=Circle(
            radius=radius,
            fill=Fill(TRANSPARENT),
            stroke=Stroke(rgba(51, 136, 255, opacity), max(1.0, 3 * (1 - eased))),
        )))
    return styles


class ClusterPulse:
    """Frame loop that re-styles every cluster while clustering is on."""

    def __init__(self, aggregator: ClusterAggregator, scheduler, renderer) -> None:
        self._aggregator = aggregator
        self._scheduler = scheduler
        self._renderer = renderer
        self._handle: Optional[int] = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is None:
            self._handle = self._scheduler.request_frame(self._tick)

    def stop(self) -> None:
        self._scheduler.cancel_frame(self._handle)
        self._handle = None

    def render_frame(self, now_ms: float) -> None:
        scene = [(g, pulse_style(g.size, now_ms)) for g in self._aggregator.groups()]
        self._renderer.set_cluster_scene(scene)
        self._renderer.request_render()

    def _tick(self, now_ms: float) -> None:
        self._handle = None
        self.render_frame(now_ms)
        self._handle = self._scheduler.request_frame(self._tick)
