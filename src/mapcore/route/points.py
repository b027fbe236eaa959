"""RoutePoints — the start/end pair collected by route-mode clicks.

Click cycle:
    empty -> start set -> both set (route is planned) -> next click resets
    to a fresh start.

``end`` is never set while ``start`` is None.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

Coordinate = tuple[float, float]

# advance() outcomes
STARTED = "started"
COMPLETED = "completed"
RESTARTED = "restarted"


@dataclass
class RoutePoints:
    start: Optional[Coordinate] = None
    end: Optional[Coordinate] = None

    @property
    def is_empty(self) -> bool:
        return self.start is None and self.end is None

    @property
    def is_complete(self) -> bool:
        return self.start is not None and self.end is not None

    def advance(self, coord) -> str:
        """Feed one click into the cycle and report which step it was."""
        coord = (float(coord[0]), float(coord[1]))
        if self.start is None:
            self.start = coord
            return STARTED
        if self.end is None:
            self.end = coord
            return COMPLETED
        self.start = coord
        self.end = None
        return RESTARTED

    def reset(self) -> None:
        self.start = None
        self.end = None
