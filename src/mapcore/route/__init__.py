"""Route planning (routing service + fallback) and rider animation."""

from mapcore.route.animator import RouteAnimationState, RouteAnimator, normalize_heading
from mapcore.route.planner import PlannedRoute, RoutePlanner, animation_duration
from mapcore.route.points import RoutePoints
from mapcore.route.rider import DeliveryStatus, RiderInfo
from mapcore.route.service import AMapRoutingService, RoutingService

__all__ = [
    "AMapRoutingService",
    "DeliveryStatus",
    "PlannedRoute",
    "RiderInfo",
    "RouteAnimationState",
    "RouteAnimator",
    "RoutePlanner",
    "RoutePoints",
    "RoutingService",
    "animation_duration",
    "normalize_heading",
]
