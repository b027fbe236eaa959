"""Rider info card model — who is delivering which order, and how far along."""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass
from typing import Callable, Optional


class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    DeliveryStatus.PENDING: "待配送",
    DeliveryStatus.IN_TRANSIT: "配送中",
    DeliveryStatus.DELIVERED: "已送达",
}


def order_id_generator(rng: Optional[random.Random] = None) -> Callable[[], str]:
    """Return a generator of ``DD`` + up-to-6-digit order numbers."""
    rng = rng or random.Random()

    def _next() -> str:
        return f"DD{rng.randrange(1_000_000)}"

    return _next


@dataclass
class RiderInfo:
    name: str
    order_id: str
    status: DeliveryStatus = DeliveryStatus.PENDING

    def to_payload(self) -> dict:
        """Overlay payload for the rider info card."""
        return {
            "name": self.name,
            "order_id": self.order_id,
            "status": self.status.value,
            "status_label": self.status.label,
        }
