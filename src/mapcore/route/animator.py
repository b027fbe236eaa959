"""RouteAnimator — route-mode clicks, route installation, and rider animation.

Lifecycle
---------
  handle_route_point()  first click places the start marker, second click
                        places the end marker and awaits plan_route(),
                        a third click clears everything and starts over.
  plan_route()          acquires a path (RoutePlanner falls back to a
                        straight segment), installs the route line, rider
                        marker and rider info card, and creates the
                        RouteAnimationState.
  start_animation()     registers a frame callback; each tick moves the
                        rider along the path and re-arms itself.
  stop_animation()      cancels the pending frame, keeps path + fraction
                        so the next start resumes in place.
  clear_route()         cancels the frame and any in-flight plan, removes
                        every route feature and the card, new order id.

Races
-----
A plan is tagged with a generation number.  clear_route() and every new
plan bump the generation, so a routing response that arrives after the
user has moved on is dropped instead of resurrecting a cleared route.
A cancelled frame handle never fires, so no tick runs after a reset.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from mapcore.geo.geometry import coordinate_at, ease_out, line_length
from mapcore.geo.projection import to_geographic, to_projected
from mapcore.interaction.overlay import OverlaySynchronizer
from mapcore.layers.feature import Category, Feature
from mapcore.layers.store import FeatureStore
from mapcore.render.style import END_MARKER, ROUTE_LINE, START_MARKER, rider_style
from mapcore.route.planner import PlannedRoute, RoutePlanner, animation_duration
from mapcore.route.points import COMPLETED, STARTED, RoutePoints
from mapcore.route.rider import DeliveryStatus, RiderInfo, order_id_generator

Coordinate = tuple[float, float]

# How far ahead (as a path fraction) to sample for the heading
HEADING_LOOKAHEAD = 0.01

# Timer slack: a frame this early still counts as a full interval
FRAME_JITTER_MS = 2.0

RIDER_OVERLAY_ID = "rider-info"
RIDER_OVERLAY_OFFSET = (0.0, -40.0)


def normalize_heading(angle: float) -> float:
    """Fold a heading into [-pi/2, pi/2] so the rider sprite never mirrors.

    Headings pointing left (|angle| > 90 degrees) are turned by 180 degrees
    and wrapped back into (-pi, pi].
    """
    if abs(angle) > math.pi / 2:
        angle += math.pi
        if angle > math.pi:
            angle -= 2 * math.pi
    return angle


def heading_between(a: Coordinate, b: Coordinate) -> float:
    return normalize_heading(math.atan2(b[1] - a[1], b[0] - a[0]))


@dataclass
class RouteAnimationState:
    """Progress of the rider along an installed route.

    ``current_fraction`` only grows while ``is_moving`` and stays in [0, 1].
    """

    path: list[Coordinate]
    duration: float
    start_time: Optional[float] = None
    current_fraction: float = 0.0
    is_moving: bool = False
    completed: bool = False
    heading: float = 0.0
    fallback: bool = False

    @property
    def length(self) -> float:
        return line_length(self.path)


class RouteAnimator:
    """Owns RoutePoints, the route features, and the rider animation."""

    def __init__(
        self,
        store: FeatureStore,
        planner: RoutePlanner,
        scheduler,
        viewport,
        renderer,
        rider_name: str = "骑手小王",
        order_ids: Optional[Callable[[], str]] = None,
        frame_interval_ms: float = 16.0,
        min_duration_ms: float = 5000.0,
        max_duration_ms: float = 20000.0,
        length_divisor: float = 20.0,
    ) -> None:
        self._layer = store[Category.ROUTE]
        self._planner = planner
        self._scheduler = scheduler
        self._renderer = renderer
        self._order_ids = order_ids or order_id_generator()
        self._rider_name = rider_name
        self._frame_interval = frame_interval_ms
        self._min_ms = min_duration_ms
        self._max_ms = max_duration_ms
        self._divisor = length_divisor

        self.route_points = RoutePoints()
        self.state: Optional[RouteAnimationState] = None
        self.rider = RiderInfo(name=rider_name, order_id=self._order_ids())
        self.overlay = OverlaySynchronizer(
            viewport, renderer, RIDER_OVERLAY_ID, offset=RIDER_OVERLAY_OFFSET,
        )

        self.start_marker: Optional[Feature] = None
        self.end_marker: Optional[Feature] = None
        self.route_feature: Optional[Feature] = None
        self.rider_feature: Optional[Feature] = None

        self._frame: Optional[int] = None
        self._last_tick: Optional[float] = None
        self._generation = 0
        self._planning = False

    @property
    def is_moving(self) -> bool:
        return self.state is not None and self.state.is_moving

    @property
    def frame_pending(self) -> bool:
        return self._frame is not None

    # ------------------------------------------------------------------
    # Click handling / planning
    # ------------------------------------------------------------------

    async def handle_route_point(self, coord: Coordinate) -> Optional[RouteAnimationState]:
        """Advance the start/end click cycle with a geographic coordinate."""
        if self.route_points.is_complete:
            self.clear_route()

        step = self.route_points.advance(coord)
        if step == STARTED:
            self.start_marker = self._add_marker(self.route_points.start, START_MARKER, "start")
            return None
        if step == COMPLETED:
            self.end_marker = self._add_marker(self.route_points.end, END_MARKER, "end")
            return await self.plan_route(self.route_points.start, self.route_points.end)
        return None

    def _add_marker(self, coord: Coordinate, style, kind: str) -> Feature:
        marker = Feature.point(
            to_projected(coord), Category.ROUTE, style=style, properties={"type": kind},
        )
        self._layer.add(marker)
        return marker

    async def plan_route(self, start: Coordinate, end: Coordinate) -> Optional[RouteAnimationState]:
        """Acquire a path and install it. Returns None if superseded."""
        self._generation += 1
        generation = self._generation
        self._planning = True
        try:
            planned = await self._planner.plan(start, end)
        finally:
            if generation == self._generation:
                self._planning = False

        if generation != self._generation:
            logger.debug("Discarding route plan superseded while in flight")
            return None
        return self._install(planned)

    def _install(self, planned: PlannedRoute) -> RouteAnimationState:
        self._cancel_frame()
        for feature in (self.route_feature, self.rider_feature):
            if feature is not None:
                self._layer.remove(feature.feature_id)

        path = planned.path
        self.route_feature = Feature.line(path, Category.ROUTE, style=ROUTE_LINE)
        self.rider_feature = Feature.point(
            path[0], Category.ROUTE, style=rider_style(0.0), properties={"type": "rider"},
        )
        self._layer.add_many([self.route_feature, self.rider_feature])

        duration = animation_duration(
            planned.length, self._min_ms, self._max_ms, self._divisor,
        )
        self.state = RouteAnimationState(
            path=list(path), duration=duration, fallback=planned.fallback,
        )
        self.rider.status = DeliveryStatus.PENDING
        self.overlay.open(to_geographic(path[0]), self.rider.to_payload())
        self._renderer.request_render()
        logger.info(
            f"Route installed: {len(path)} vertices, {planned.length:.0f}m, "
            f"{duration:.0f}ms{' (fallback)' if planned.fallback else ''}"
        )
        return self.state

    # ------------------------------------------------------------------
    # Animation
    # ------------------------------------------------------------------

    def start_animation(self) -> bool:
        """Start (or resume) the rider. No-op without a route or when moving."""
        state = self.state
        if state is None or state.is_moving:
            return False
        if state.completed:
            state.completed = False
            state.current_fraction = 0.0

        now = self._scheduler.now()
        state.start_time = now - state.current_fraction * state.duration
        state.is_moving = True
        self._last_tick = None
        self._set_status(DeliveryStatus.IN_TRANSIT)
        self._frame = self._scheduler.request_frame(self._tick)
        return True

    def stop_animation(self) -> None:
        """Pause the rider in place. Path and fraction are kept."""
        self._cancel_frame()
        if self.state is not None and self.state.is_moving:
            self.state.is_moving = False
            self._set_status(DeliveryStatus.PENDING)

    def sample(self, fraction: float) -> tuple[Coordinate, float]:
        """Rider position and heading at a (linear) time *fraction*."""
        state = self.state
        eased = ease_out(fraction)
        point = coordinate_at(state.path, eased)
        ahead = coordinate_at(state.path, min(eased + HEADING_LOOKAHEAD, 1.0))
        if ahead == point:
            return point, state.heading
        return point, heading_between(point, ahead)

    def _tick(self, now: float) -> None:
        self._frame = None
        state = self.state
        if state is None or not state.is_moving:
            return

        if (self._last_tick is not None
                and now - self._last_tick < self._frame_interval - FRAME_JITTER_MS):
            self._frame = self._scheduler.request_frame(self._tick)
            return
        self._last_tick = now

        fraction = (now - state.start_time) / state.duration
        if fraction >= 1.0:
            self._complete()
            return

        state.current_fraction = max(state.current_fraction, fraction)
        point, heading = self.sample(state.current_fraction)
        state.heading = heading
        self._move_rider(point, heading)
        self._renderer.request_render()
        self._frame = self._scheduler.request_frame(self._tick)

    def _complete(self) -> None:
        state = self.state
        state.current_fraction = 1.0
        state.is_moving = False
        state.completed = True
        self._move_rider(state.path[-1], state.heading)
        self._set_status(DeliveryStatus.DELIVERED)
        self._renderer.request_render()
        logger.info(f"Order {self.rider.order_id} delivered")

    def _move_rider(self, point: Coordinate, heading: float) -> None:
        if self.rider_feature is None:
            return
        self._layer.set_point(self.rider_feature, point)
        self._layer.set_style(self.rider_feature, rider_style(heading))
        self.overlay.move_to(to_geographic(point))

    def _set_status(self, status: DeliveryStatus) -> None:
        self.rider.status = status
        self.overlay.update_payload(self.rider.to_payload())

    def _cancel_frame(self) -> None:
        self._scheduler.cancel_frame(self._frame)
        self._frame = None

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def clear_route(self) -> None:
        """Remove the route entirely. A second call in a row changes nothing."""
        self._cancel_frame()
        dirty = (
            self.state is not None
            or self._planning
            or not self.route_points.is_empty
            or len(self._layer) > 0
        )
        if not dirty:
            return

        self._generation += 1
        self._planning = False
        self._layer.clear()
        self.overlay.close()
        self.state = None
        self.route_points.reset()
        self.start_marker = self.end_marker = None
        self.route_feature = self.rider_feature = None
        self._last_tick = None
        self.rider = RiderInfo(
            name=self._rider_name, order_id=self._order_ids(), status=DeliveryStatus.PENDING,
        )
        logger.debug(f"Route cleared, next order {self.rider.order_id}")
