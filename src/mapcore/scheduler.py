"""Frame schedulers — the cooperative "next animation frame" primitive.

A frame callback is one-shot: it receives the frame timestamp (ms) and
must call request_frame() again to keep a loop alive.  Loops are re-armed
at the end of each tick rather than recursing, and a cancelled handle is
guaranteed never to fire.

ManualFrameScheduler:
  Deterministic clock for tests and headless replay.  advance(ms) steps
  time one frame at a time and runs the callbacks that were pending at the
  start of each frame.

AsyncioFrameScheduler:
  Wall-clock frames on a running asyncio loop via loop.call_later().
  Requests made before a loop runs are parked until attach().
"""

from __future__ import annotations

import asyncio
import itertools
import time
from typing import Callable, Optional, Protocol

from loguru import logger

FrameCallback = Callable[[float], None]


class FrameScheduler(Protocol):
    def now(self) -> float: ...

    def request_frame(self, callback: FrameCallback) -> int: ...

    def cancel_frame(self, handle: Optional[int]) -> None: ...

    def attach(self) -> None: ...


class ManualFrameScheduler:
    """Frame scheduler driven by an explicit clock."""

    def __init__(self, frame_ms: float = 16.0, start_ms: float = 0.0) -> None:
        self.frame_ms = frame_ms
        self._now = start_ms
        self._ids = itertools.count(1)
        self._pending: dict[int, FrameCallback] = {}
        self.frames_run = 0

    def now(self) -> float:
        return self._now

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: Optional[int]) -> None:
        if handle is not None:
            self._pending.pop(handle, None)

    def attach(self) -> None:
        """No-op: the manual clock needs no event loop."""

    def step(self) -> None:
        """Advance one frame and run every callback due in it."""
        self._now += self.frame_ms
        due = list(self._pending.items())
        self._pending.clear()
        for handle, callback in due:
            try:
                callback(self._now)
            except Exception:
                logger.exception(f"Frame callback {handle} raised")
        self.frames_run += 1

    def advance(self, ms: float) -> None:
        """Advance the clock by *ms*, running frames along the way."""
        target = self._now + ms
        while self._now + self.frame_ms <= target + 1e-9:
            self.step()
        self._now = max(self._now, target)

    def run_until_idle(self, max_ms: float = 60_000.0) -> None:
        """Step frames until nothing is pending or *max_ms* has elapsed."""
        deadline = self._now + max_ms
        while self._pending and self._now < deadline:
            self.step()


class AsyncioFrameScheduler:
    """Frame scheduler on the running asyncio event loop.

    Frames requested before any loop is running are parked and armed by
    attach(), or by the first request made from inside a running loop.
    """

    def __init__(self, frame_ms: float = 16.0,
                 loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self.frame_ms = frame_ms
        self._loop = loop
        self._ids = itertools.count(1)
        self._handles: dict[int, asyncio.TimerHandle] = {}
        self._parked: dict[int, FrameCallback] = {}

    def now(self) -> float:
        return time.monotonic() * 1000.0

    def _get_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                return None
        return self._loop

    def _arm(self, loop: asyncio.AbstractEventLoop, handle: int, callback: FrameCallback) -> None:
        def _fire() -> None:
            if self._handles.pop(handle, None) is None:
                return
            try:
                callback(self.now())
            except Exception:
                logger.exception(f"Frame callback {handle} raised")

        self._handles[handle] = loop.call_later(self.frame_ms / 1000.0, _fire)

    def _arm_parked(self, loop: asyncio.AbstractEventLoop) -> None:
        parked, self._parked = self._parked, {}
        for handle, callback in parked.items():
            self._arm(loop, handle, callback)

    def attach(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Bind to *loop* (default: the running loop) and arm parked frames."""
        if loop is not None:
            self._loop = loop
        loop = self._get_loop()
        if loop is None:
            raise RuntimeError("attach() needs a running event loop or an explicit loop")
        if self._parked:
            logger.debug(f"Arming {len(self._parked)} parked frame(s)")
        self._arm_parked(loop)

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._ids)
        loop = self._get_loop()
        if loop is None:
            self._parked[handle] = callback
            return handle
        self._arm_parked(loop)
        self._arm(loop, handle, callback)
        return handle

    def cancel_frame(self, handle: Optional[int]) -> None:
        if handle is None:
            return
        self._parked.pop(handle, None)
        timer = self._handles.pop(handle, None)
        if timer is not None:
            timer.cancel()

    @property
    def pending_count(self) -> int:
        return len(self._handles) + len(self._parked)
