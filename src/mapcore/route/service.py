"""Routing service clients.

A routing service turns a geographic origin/destination pair into an
ordered list of (lng, lat) coordinates, raising RoutingError when it can't.

AMapRoutingService talks to the AMap web-service driving API:

    GET {base}/v3/direction/driving?origin=lng,lat&destination=lng,lat
        &strategy=0&key=...

    {"status": "1", "route": {"paths": [{"distance": "...",
        "steps": [{"polyline": "116.39,39.90;116.40,39.91"}, ...]}]}}

Every step's polyline of the first path is concatenated in order into one
sequence; a vertex shared by consecutive steps is kept only once.
"""

from __future__ import annotations

from typing import Optional, Protocol

import httpx
from loguru import logger

from mapcore.errors import RoutingError

_USER_AGENT = "mapcore/0.1.0"

# AMap driving strategy 0 = fastest (least time)
STRATEGY_LEAST_TIME = 0

Coordinate = tuple[float, float]


class RoutingService(Protocol):
    async def plan_route(self, origin: Coordinate, destination: Coordinate) -> list[Coordinate]:
        ...


def _fmt(coord: Coordinate) -> str:
    return f"{coord[0]:.6f},{coord[1]:.6f}"


def parse_polyline(polyline: str) -> list[Coordinate]:
    """Parse an AMap ``"lng,lat;lng,lat"`` polyline."""
    points: list[Coordinate] = []
    for pair in polyline.split(";"):
        pair = pair.strip()
        if not pair:
            continue
        lng, lat = pair.split(",")
        points.append((float(lng), float(lat)))
    return points


def flatten_steps(steps: list[dict]) -> list[Coordinate]:
    """Concatenate step polylines into one ordered coordinate sequence."""
    path: list[Coordinate] = []
    for step in steps:
        for point in parse_polyline(step.get("polyline", "")):
            if path and path[-1] == point:
                continue
            path.append(point)
    return path


class AMapRoutingService:
    """Driving routes from the AMap web service.

    Args:
        key: AMap web-service key.
        base_url: API root, overridable for tests/proxies.
        timeout: Request timeout in seconds.
        client: Optional pre-built httpx.AsyncClient (e.g. with a
            MockTransport). When omitted one is created per request.
    """

    def __init__(
        self,
        key: str,
        base_url: str = "https://restapi.amap.com",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        strategy: int = STRATEGY_LEAST_TIME,
    ) -> None:
        self._key = key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._strategy = strategy

    @classmethod
    def from_settings(cls, settings) -> Optional[AMapRoutingService]:
        """Build from Settings, or None when no key is configured."""
        if not settings.amap_key:
            return None
        return cls(
            key=settings.amap_key,
            base_url=settings.amap_base_url,
            timeout=settings.routing_timeout,
        )

    async def plan_route(self, origin: Coordinate, destination: Coordinate) -> list[Coordinate]:
        params = {
            "origin": _fmt(origin),
            "destination": _fmt(destination),
            "strategy": str(self._strategy),
            "extensions": "base",
            "key": self._key,
        }
        url = f"{self._base_url}/v3/direction/driving"
        try:
            if self._client is not None:
                resp = await self._client.get(url, params=params)
            else:
                async with httpx.AsyncClient(
                    timeout=self._timeout, headers={"User-Agent": _USER_AGENT},
                ) as client:
                    resp = await client.get(url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise RoutingError(f"Routing request failed: {exc}") from exc
        except ValueError as exc:
            raise RoutingError(f"Routing response is not JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise RoutingError(f"Routing response is not an object: {type(data).__name__}")
        if str(data.get("status")) != "1":
            raise RoutingError(f"Routing failed: {data.get('info', 'unknown error')}")

        route = data.get("route") or {}
        if not isinstance(route, dict):
            raise RoutingError(f"Malformed route: {type(route).__name__}")
        paths = route.get("paths") or []
        if not isinstance(paths, list) or not paths:
            raise RoutingError("Routing returned no paths")

        try:
            path = flatten_steps(paths[0].get("steps") or [])
        except (ValueError, AttributeError) as exc:
            raise RoutingError(f"Malformed route polyline: {exc}") from exc

        if len(path) < 2:
            raise RoutingError("Routing returned fewer than two coordinates")

        logger.debug(f"AMap route: {len(path)} vertices, {paths[0].get('distance', '?')}m")
        return path
