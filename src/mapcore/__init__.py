"""mapcore — interactive annotation layer for a map-exploration viewport.

Turns viewport clicks into domain features (points, route endpoints, heat
samples, selection polygons) and keeps the derived state (clusters, route
animation, box selection, anchored overlays) consistent with a moving
viewport transform.
"""

from mapcore.interaction.controller import MapController
from mapcore.interaction.modes import Mode

__all__ = ["MapController", "Mode"]

__version__ = "0.1.0"
