"""Viewport — the live pan/zoom transform between projected space and pixels.

This is a headless model of the rendering engine's view: it holds the
center, zoom and pixel size, answers pixel <-> coordinate queries, and
publishes a ``change`` notification (the engine's "moveend") whenever the
transform changes.  Pixels are (px, py) with the origin at the top-left
corner of the map element and +py pointing down.
"""

from __future__ import annotations

import math
from typing import Callable, Optional

from mapcore.events import EventBus, Subscription
from mapcore.geo.geometry import Extent
from mapcore.geo.projection import to_geographic, to_projected

# Resolution (metres/pixel) at zoom 0 for 256px tiles
RESOLUTION_Z0 = 156543.03392804097

Pixel = tuple[float, float]

CHANGE = "change"


def resolution_for_zoom(zoom: float) -> float:
    return RESOLUTION_Z0 / (2 ** zoom)


def zoom_for_resolution(resolution: float) -> float:
    return math.log2(RESOLUTION_Z0 / resolution)


class Viewport:
    """Pan/zoom state of the map view.

    Args:
        center: Initial center in projected coordinates.
        zoom: Initial zoom level.
        size: Map element size in pixels, or None until laid out.
        min_zoom / max_zoom: Zoom clamp.
    """

    def __init__(
        self,
        center: tuple[float, float] = (0.0, 0.0),
        zoom: float = 12.0,
        size: Optional[tuple[int, int]] = None,
        min_zoom: float = 4.0,
        max_zoom: float = 18.0,
    ) -> None:
        self._bus = EventBus()
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self._center = (float(center[0]), float(center[1]))
        self._zoom = self._clamp_zoom(zoom)
        self._size = size

    @classmethod
    def from_settings(cls, settings, size: Optional[tuple[int, int]] = None) -> Viewport:
        center = to_projected((settings.map_center_lng, settings.map_center_lat))
        return cls(
            center=center,
            zoom=settings.map_zoom,
            size=size,
            min_zoom=settings.map_min_zoom,
            max_zoom=settings.map_max_zoom,
        )

    # -- state ---------------------------------------------------------------

    @property
    def center(self) -> tuple[float, float]:
        return self._center

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def resolution(self) -> float:
        return resolution_for_zoom(self._zoom)

    @property
    def size(self) -> Optional[tuple[int, int]]:
        return self._size

    def _clamp_zoom(self, zoom: float) -> float:
        return max(self.min_zoom, min(self.max_zoom, float(zoom)))

    # -- mutation (each publishes a change) -----------------------------------

    def pan_to(self, center: tuple[float, float]) -> None:
        self._center = (float(center[0]), float(center[1]))
        self._bus.publish(CHANGE, self)

    def pan_by(self, dx_px: float, dy_px: float) -> None:
        """Drag the view by a pixel delta (content moves with the pointer)."""
        res = self.resolution
        self.pan_to((self._center[0] - dx_px * res, self._center[1] + dy_px * res))

    def set_zoom(self, zoom: float) -> None:
        self._zoom = self._clamp_zoom(zoom)
        self._bus.publish(CHANGE, self)

    def set_size(self, size: Optional[tuple[int, int]]) -> None:
        self._size = size
        self._bus.publish(CHANGE, self)

    def fit(self, extent: Extent, padding: tuple[float, float, float, float] = (50, 50, 50, 50)) -> None:
        """Center on *extent* at the largest zoom that shows it with padding.

        Padding is (top, right, bottom, left) in pixels. A no-op until the
        viewport has a size or for an empty extent.
        """
        if self._size is None or extent.is_empty():
            return
        top, right, bottom, left = padding
        avail_w = max(1.0, self._size[0] - left - right)
        avail_h = max(1.0, self._size[1] - top - bottom)
        res = max(extent.width / avail_w, extent.height / avail_h)
        if res > 0:
            self._zoom = self._clamp_zoom(zoom_for_resolution(res))
        else:
            self._zoom = self.max_zoom
        self._center = extent.center
        self._bus.publish(CHANGE, self)

    # -- notifications -------------------------------------------------------

    def on_change(self, callback: Callable[[Viewport], None]) -> Subscription:
        """Subscribe to transform-change notifications."""
        return self._bus.subscribe(CHANGE, callback)

    @property
    def listener_count(self) -> int:
        return self._bus.subscriber_count(CHANGE)

    # -- transforms ----------------------------------------------------------

    def pixel_from_coordinate(self, coord) -> Optional[Pixel]:
        """Projected coordinate -> pixel, or None if the view can't project it."""
        if self._size is None:
            return None
        x, y = float(coord[0]), float(coord[1])
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        res = self.resolution
        px = (x - self._center[0]) / res + self._size[0] / 2
        py = (self._center[1] - y) / res + self._size[1] / 2
        return (px, py)

    def coordinate_from_pixel(self, pixel) -> Optional[tuple[float, float]]:
        if self._size is None:
            return None
        res = self.resolution
        x = self._center[0] + (pixel[0] - self._size[0] / 2) * res
        y = self._center[1] - (pixel[1] - self._size[1] / 2) * res
        return (x, y)

    def project(self, geo) -> Optional[Pixel]:
        """Geographic (lng, lat) -> pixel, or None on projection failure."""
        return self.pixel_from_coordinate(to_projected(geo))

    def geographic_from_pixel(self, pixel) -> Optional[tuple[float, float]]:
        coord = self.coordinate_from_pixel(pixel)
        return to_geographic(coord) if coord is not None else None

    def visible_extent(self) -> Optional[Extent]:
        if self._size is None:
            return None
        res = self.resolution
        half_w = self._size[0] * res / 2
        half_h = self._size[1] * res / 2
        cx, cy = self._center
        return Extent(cx - half_w, cy - half_h, cx + half_w, cy + half_h)
