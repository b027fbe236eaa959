"""MapController — top-level coordinator of the annotation layer.

Composes the components and exposes the public API the UI shell calls:

    viewport click --> mode dispatch table --> handler --> FeatureStore
        --> (ClusterAggregator | RouteAnimator | BoxSelector)
        --> OverlaySynchronizer --> Renderer.request_render()

Every collaborator (viewport, store, frame scheduler, renderer, routing
service, random source, order-id generator, settings) can be injected;
anything omitted is built from ``mapcore.config.settings``.

Clicks are dispatched strictly in arrival order: on_viewport_click() holds
an asyncio.Lock for the duration of the handler, including a route plan
awaiting the routing service.

The controller may be built outside a running loop. Frames it requests
there (a configured cluster pulse, an early start_animation) wait until
attach() or the first click binds the scheduler to the loop.
"""

from __future__ import annotations

import asyncio
import inspect
import random
from typing import Any, Callable, Optional

from loguru import logger
from pydantic import BaseModel, Field

from mapcore.config import settings as default_settings
from mapcore.errors import GeoJSONError
from mapcore.geo.projection import to_projected
from mapcore.geo.viewport import Viewport
from mapcore.interaction.box_select import BoxSelector, SelectionArea
from mapcore.interaction.heatmap import HeatmapSampler, HeatmapSettings
from mapcore.interaction.modes import Mode, create_mode_fsm
from mapcore.interaction.overlay import OverlaySynchronizer, PopupState
from mapcore.layers.feature import Category, Feature
from mapcore.layers.geojson import parse_geojson
from mapcore.layers.store import ADD, GEOMETRY, REMOVE, STYLE, FeatureStore, StoreChange
from mapcore.render.cluster import ClusterAggregator, ClusterGroup, ClusterPulse
from mapcore.render.renderer import HeadlessRenderer
from mapcore.render.style import geojson_style
from mapcore.route.animator import RouteAnimationState, RouteAnimator
from mapcore.route.planner import RoutePlanner
from mapcore.route.points import RoutePoints
from mapcore.route.rider import order_id_generator
from mapcore.route.service import AMapRoutingService
from mapcore.scheduler import AsyncioFrameScheduler

POPUP_OVERLAY_ID = "popup"

# Default for routing_service: build an AMap client from settings (None disables)
_FROM_SETTINGS = object()

_AREA_TYPES = ["商业", "住宅", "工业", "文教"]


class GeoJSONStyle(BaseModel):
    """Fill/stroke/opacity for the GeoJSON layer."""
    fill: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")
    stroke: Optional[str] = None
    opacity: float = Field(default=0.5, ge=0, le=1)


class MapController:
    """Owns the current mode and routes viewport events to the components."""

    def __init__(
        self,
        viewport: Optional[Viewport] = None,
        store: Optional[FeatureStore] = None,
        scheduler=None,
        renderer=None,
        routing_service=_FROM_SETTINGS,
        rng: Optional[random.Random] = None,
        order_ids: Optional[Callable[[], str]] = None,
        settings=None,
    ) -> None:
        cfg = settings or default_settings
        self.settings = cfg
        self.viewport = viewport or Viewport.from_settings(cfg)
        self.store = store or FeatureStore()
        self.scheduler = scheduler or AsyncioFrameScheduler(frame_ms=cfg.frame_interval_ms)
        self.renderer = renderer or HeadlessRenderer()
        self._rng = rng or random.Random()

        if routing_service is _FROM_SETTINGS:
            routing_service = AMapRoutingService.from_settings(cfg)

        self.store.subscribe(self._mirror_to_renderer)

        self.popup = OverlaySynchronizer(self.viewport, self.renderer, POPUP_OVERLAY_ID)
        self.current_point_data: Optional[dict] = None

        self.clusters = ClusterAggregator(
            self.store[Category.POINTS], self.viewport, cfg.cluster_distance,
        )
        self.cluster_pulse = ClusterPulse(self.clusters, self.scheduler, self.renderer)
        self.cluster_enabled = False

        self.route = RouteAnimator(
            self.store,
            RoutePlanner(routing_service),
            self.scheduler,
            self.viewport,
            self.renderer,
            rider_name=cfg.rider_name,
            order_ids=order_ids or order_id_generator(self._rng),
            frame_interval_ms=cfg.frame_interval_ms,
            min_duration_ms=cfg.animation_min_ms,
            max_duration_ms=cfg.animation_max_ms,
            length_divisor=cfg.animation_length_divisor,
        )
        self.box_select = BoxSelector(self.store, self.renderer)
        self.heatmap = HeatmapSampler(
            self.store, self.renderer, self._rng,
            HeatmapSettings(blur=cfg.heatmap_blur, radius=cfg.heatmap_radius),
        )

        self._modes = create_mode_fsm(self.box_select)
        self._dispatch: dict[Mode, Callable[..., Any]] = {
            Mode.POINT: self._on_point_click,
            Mode.ROUTE: self._on_route_click,
            Mode.HEATMAP: self._on_heatmap_click,
        }
        self._click_lock: Optional[asyncio.Lock] = None

        self.renderer.set_layer_style(Category.GEOJSON.value, geojson_style())
        self.toggle_cluster(cfg.cluster_enabled)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def mode(self) -> Mode:
        return Mode(self._modes.current_state)

    @property
    def route_points(self) -> RoutePoints:
        return self.route.route_points

    @property
    def animation_state(self) -> Optional[RouteAnimationState]:
        return self.route.state

    @property
    def selection_area(self) -> Optional[SelectionArea]:
        return self.box_select.area

    @property
    def popup_state(self) -> PopupState:
        return self.popup.state

    @property
    def heatmap_settings(self) -> HeatmapSettings:
        return self.heatmap.settings

    def cluster_groups(self) -> list[ClusterGroup]:
        return self.clusters.groups()

    # ------------------------------------------------------------------
    # Modes and dispatch
    # ------------------------------------------------------------------

    def attach(self) -> None:
        """Arm frames requested before the event loop was running."""
        self.scheduler.attach()

    def set_mode(self, mode) -> Mode:
        mode = Mode.parse(mode)
        if self._modes.transition(mode.value):
            logger.info(f"Mode -> {mode.value}")
        return mode

    async def on_viewport_click(self, coordinate, pixel=None, native=None) -> None:
        """Dispatch a viewport click (geographic *coordinate*) by mode.

        Box-select clicks are ignored here; the draw interaction consumes them.
        """
        if self._click_lock is None:
            self._click_lock = asyncio.Lock()
            self.scheduler.attach()
        async with self._click_lock:
            handler = self._dispatch.get(self.mode)
            if handler is None:
                return
            result = handler(coordinate, pixel, native)
            if inspect.isawaitable(result):
                await result

    def _on_point_click(self, coordinate, pixel, native) -> None:
        self.add_point(coordinate)
        payload = {
            "longitude": coordinate[0],
            "latitude": coordinate[1],
            "area": f"区域{self._rng.randrange(1, 11)}",
            "type": self._rng.choice(_AREA_TYPES),
            "status": "active" if self._rng.random() > 0.5 else "inactive",
        }
        self.popup.open(coordinate, payload)

    def _on_route_click(self, coordinate, pixel, native):
        return self.route.handle_route_point(coordinate)

    def _on_heatmap_click(self, coordinate, pixel, native) -> None:
        self.add_heatmap_point(coordinate)

    # ------------------------------------------------------------------
    # Points and popup
    # ------------------------------------------------------------------

    def add_point(self, coordinate) -> Feature:
        """Place a point feature at a geographic coordinate."""
        feature = Feature.point(to_projected(coordinate), Category.POINTS)
        self.store[Category.POINTS].add(feature)
        self.current_point_data = {
            "longitude": coordinate[0],
            "latitude": coordinate[1],
            "data": [self._rng.randrange(1000) for _ in range(6)],
        }
        self.renderer.request_render()
        return feature

    def close_popup(self) -> None:
        self.popup.close()

    def clear_current_point(self) -> None:
        self.current_point_data = None

    # ------------------------------------------------------------------
    # Route
    # ------------------------------------------------------------------

    async def handle_route_point(self, coordinate) -> Optional[RouteAnimationState]:
        return await self.route.handle_route_point(coordinate)

    def start_animation(self) -> bool:
        return self.route.start_animation()

    def stop_animation(self) -> None:
        self.route.stop_animation()

    def clear_route(self) -> None:
        self.route.clear_route()

    # ------------------------------------------------------------------
    # Clustering
    # ------------------------------------------------------------------

    def toggle_cluster(self, enabled: bool) -> None:
        self.cluster_enabled = bool(enabled)
        self.renderer.set_layer_visible(Category.POINTS.value, not self.cluster_enabled)
        self.renderer.set_layer_visible("clusters", self.cluster_enabled)
        if self.cluster_enabled:
            self.cluster_pulse.start()
        else:
            self.cluster_pulse.stop()

    def update_cluster_distance(self, distance: float) -> None:
        self.clusters.update_distance(distance)
        self.renderer.request_render()

    # ------------------------------------------------------------------
    # Box select
    # ------------------------------------------------------------------

    def start_box_select(self):
        return self.box_select.start()

    def stop_box_select(self) -> None:
        self.box_select.stop()

    def clear_selection(self) -> None:
        self.box_select.clear_selection()
        self.renderer.request_render()

    # ------------------------------------------------------------------
    # Heatmap
    # ------------------------------------------------------------------

    def add_heatmap_point(self, coordinate) -> Feature:
        feature = self.heatmap.add_point(coordinate)
        self.renderer.request_render()
        return feature

    def update_heatmap_settings(self, blur: float, radius: float) -> HeatmapSettings:
        return self.heatmap.update_settings(blur=blur, radius=radius)

    def clear_heatmap(self) -> None:
        self.heatmap.clear()
        self.renderer.request_render()

    # ------------------------------------------------------------------
    # GeoJSON
    # ------------------------------------------------------------------

    def load_geojson(self, data, style=None) -> int:
        """Replace the GeoJSON layer with *data*; returns the feature count.

        Raises:
            GeoJSONError: Malformed data. The store is left untouched.
        """
        try:
            parsed_style = GeoJSONStyle.model_validate(style) if style is not None else None
            features = parse_geojson(data)
        except GeoJSONError as exc:
            logger.error(f"Error loading GeoJSON: {exc}")
            raise
        except ValueError as exc:
            logger.error(f"Invalid GeoJSON style: {exc}")
            raise GeoJSONError(f"Invalid GeoJSON style: {exc}") from exc

        layer = self.store[Category.GEOJSON]
        layer.clear()
        layer.add_many(features)
        if parsed_style is not None:
            self.update_geojson_style(parsed_style)
        if features:
            self.viewport.fit(layer.extent(), padding=(50, 50, 50, 50))
        self.renderer.request_render()
        logger.info(f"Loaded {len(features)} GeoJSON features")
        return len(features)

    def update_geojson_style(self, style) -> None:
        if not isinstance(style, GeoJSONStyle):
            style = GeoJSONStyle.model_validate(style)
        self.renderer.set_layer_style(
            Category.GEOJSON.value,
            geojson_style(style.fill, style.stroke, style.opacity),
        )

    def geojson_feature_count(self) -> int:
        return len(self.store[Category.GEOJSON])

    def clear_geojson(self) -> None:
        self.store[Category.GEOJSON].clear()

    # ------------------------------------------------------------------
    # Everything
    # ------------------------------------------------------------------

    def clear_all(self) -> None:
        """Drop every feature, the route, the selection and the popup."""
        self.route.clear_route()
        self.store[Category.POINTS].clear()
        self.heatmap.clear()
        self.box_select.clear_selection()
        self.clear_geojson()
        self.current_point_data = None
        self.close_popup()
        self.clusters.invalidate()
        self.renderer.request_render()

    # ------------------------------------------------------------------
    # Renderer mirror
    # ------------------------------------------------------------------

    def _mirror_to_renderer(self, change: StoreChange) -> None:
        if change.action == ADD:
            for feature in change.features:
                self.renderer.add_feature(feature)
        elif change.action == REMOVE:
            for feature in change.features:
                self.renderer.remove_feature(feature)
        elif change.action == STYLE:
            for feature in change.features:
                self.renderer.set_style(feature, feature.style)
        elif change.action == GEOMETRY:
            for feature in change.features:
                self.renderer.update_geometry(feature)
