"""Exception hierarchy for the map annotation core.

Only malformed caller input is raised out of the public API.  Routing
failures are caught by the planner and degrade to a straight segment.
"""

from __future__ import annotations


class MapCoreError(Exception):
    """Base class for all mapcore errors."""


class GeoJSONError(MapCoreError, ValueError):
    """Raised when GeoJSON input cannot be parsed into features."""


class RoutingError(MapCoreError):
    """Raised by a routing service that could not produce a path."""
