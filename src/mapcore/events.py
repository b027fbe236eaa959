"""EventBus — synchronous pub/sub for viewport and store notifications.

Everything in mapcore runs on one event/frame thread, so publish() calls
subscribers inline in subscription order.  Subscribers get a Subscription
handle whose cancel() is idempotent; cancelling from inside a callback is
safe.
"""

from __future__ import annotations

from typing import Any, Callable

from loguru import logger

Callback = Callable[[Any], None]


class Subscription:
    """Handle returned by EventBus.subscribe()."""

    def __init__(self, bus: EventBus, event_type: str, callback: Callback) -> None:
        self._bus = bus
        self.event_type = event_type
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._bus._remove(self)


class EventBus:
    """Simple in-process pub/sub keyed by event type."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = {}

    def subscribe(self, event_type: str, callback: Callback) -> Subscription:
        sub = Subscription(self, event_type, callback)
        self._subscribers.setdefault(event_type, []).append(sub)
        return sub

    def subscriber_count(self, event_type: str) -> int:
        return len(self._subscribers.get(event_type, []))

    def publish(self, event_type: str, data: Any = None) -> None:
        # Snapshot so callbacks may (un)subscribe while we iterate
        for sub in list(self._subscribers.get(event_type, [])):
            if not sub.active:
                continue
            try:
                sub.callback(data)
            except Exception:
                logger.exception(f"Subscriber for '{event_type}' raised")

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.event_type)
        if not subs:
            return
        try:
            subs.remove(sub)
        except ValueError:
            pass
