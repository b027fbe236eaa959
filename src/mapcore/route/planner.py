"""Route planner — path acquisition with a straight-line fallback.

plan() asks the routing service for a road path between two geographic
points and projects it.  If the service is unavailable, fails, or returns
nothing usable, the route falls back to the direct segment [start, end].
The fallback is logged but never raised: callers always get a path, and a
2-point path animates exactly like a long one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
from loguru import logger

from mapcore.errors import RoutingError
from mapcore.geo.geometry import line_length
from mapcore.geo.projection import to_projected
from mapcore.route.service import RoutingService

Coordinate = tuple[float, float]

DEFAULT_MIN_MS = 5000.0
DEFAULT_MAX_MS = 20000.0
DEFAULT_DIVISOR = 20.0


@dataclass
class PlannedRoute:
    """A projected path plus whether it came from the fallback."""

    path: list[Coordinate]
    fallback: bool

    @property
    def length(self) -> float:
        return line_length(self.path)


def animation_duration(
    length: float,
    min_ms: float = DEFAULT_MIN_MS,
    max_ms: float = DEFAULT_MAX_MS,
    divisor: float = DEFAULT_DIVISOR,
) -> float:
    """Traversal time in ms: length / divisor, clamped to [min_ms, max_ms]."""
    return min(max(length / divisor, min_ms), max_ms)


class RoutePlanner:
    """Acquire a route from a RoutingService (optional)."""

    def __init__(self, service: Optional[RoutingService] = None) -> None:
        self._service = service

    async def plan(self, start: Coordinate, end: Coordinate) -> PlannedRoute:
        """Plan a route between two geographic coordinates.

        Args:
            start: (lng, lat) origin.
            end: (lng, lat) destination.

        Returns:
            PlannedRoute with projected coordinates. Never raises for
            service problems.
        """
        if self._service is None:
            logger.warning("No routing service configured, using straight line")
            return self._fallback(start, end)

        try:
            geo_path = await self._service.plan_route(start, end)
        except (RoutingError, httpx.HTTPError) as exc:
            logger.warning(f"Route planning failed, using straight line: {exc}")
            return self._fallback(start, end)
        except Exception as exc:
            logger.opt(exception=exc).warning(
                f"Routing service raised {type(exc).__name__}, using straight line"
            )
            return self._fallback(start, end)

        if not geo_path or len(geo_path) < 2:
            logger.warning("Routing service returned an empty path, using straight line")
            return self._fallback(start, end)

        path = [to_projected(p) for p in geo_path]
        logger.info(f"Route planned: {len(path)} vertices, {line_length(path):.0f}m")
        return PlannedRoute(path=path, fallback=False)

    @staticmethod
    def _fallback(start: Coordinate, end: Coordinate) -> PlannedRoute:
        return PlannedRoute(path=[to_projected(start), to_projected(end)], fallback=True)
