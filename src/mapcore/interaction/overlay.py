"""OverlaySynchronizer — keeps a DOM-anchored overlay glued to a map coordinate.

The anchor is geographic and authoritative; the screen position is always
recomputed from it through the viewport and never stored as truth.  While
open, the synchronizer holds exactly one viewport subscription, so a
reopen or a double close can't leak listeners.

If the viewport can't project the anchor (not laid out yet, non-finite
coordinate) the screen position stays None for that frame and the
renderer is not touched; the next transform change retries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from mapcore.events import Subscription
from mapcore.geo.viewport import Viewport

Coordinate = tuple[float, float]
Pixel = tuple[float, float]


@dataclass
class PopupState:
    visible: bool = False
    anchor: Optional[Coordinate] = None
    screen_position: Optional[Pixel] = None
    payload: Any = None


class OverlaySynchronizer:
    """One overlay element tracking one geographic anchor.

    Args:
        viewport: The live viewport transform.
        renderer: Receives add/position/remove overlay calls.
        overlay_id: Renderer-side identifier of the overlay element.
        offset: Pixel offset applied to the projected anchor.
    """

    def __init__(self, viewport: Viewport, renderer, overlay_id: str,
                 offset: tuple[float, float] = (0.0, 0.0)) -> None:
        self._viewport = viewport
        self._renderer = renderer
        self.overlay_id = overlay_id
        self.offset = offset
        self.state = PopupState()
        self._subscription: Optional[Subscription] = None

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None

    def open(self, anchor: Coordinate, payload: Any = None) -> PopupState:
        """Show the overlay at *anchor* and start tracking the viewport."""
        self.state = PopupState(
            visible=True,
            anchor=(float(anchor[0]), float(anchor[1])),
            payload=payload,
        )
        self._renderer.add_overlay(self.overlay_id, payload, None)
        if self._subscription is None:
            self._subscription = self._viewport.on_change(self._on_transform_change)
        self.refresh()
        return self.state

    def move_to(self, anchor: Coordinate) -> None:
        """Re-anchor an open overlay."""
        if not self.state.visible:
            return
        self.state.anchor = (float(anchor[0]), float(anchor[1]))
        self.refresh()

    def update_payload(self, payload: Any) -> None:
        if not self.state.visible:
            return
        self.state.payload = payload
        self._renderer.add_overlay(self.overlay_id, payload, self.state.screen_position)

    def refresh(self) -> Optional[Pixel]:
        """Recompute the screen position from the anchor."""
        if not self.state.visible or self.state.anchor is None:
            return None
        pixel = self._viewport.project(self.state.anchor)
        if pixel is None:
            logger.debug(f"Overlay {self.overlay_id}: anchor not projectable, skipping")
            self.state.screen_position = None
            return None
        pixel = (pixel[0] + self.offset[0], pixel[1] + self.offset[1])
        self.state.screen_position = pixel
        self._renderer.set_overlay_position(self.overlay_id, pixel)
        return pixel

    def close(self) -> None:
        """Hide the overlay and drop the viewport subscription. Idempotent."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self.state.visible:
            self._renderer.remove_overlay(self.overlay_id)
        self.state = PopupState()

    def _on_transform_change(self, _viewport) -> None:
        self.refresh()
