"""Minimal finite state machine with enter/exit hooks.

States are registered by name.  transition() runs the current state's
on_exit, switches, then runs the new state's on_enter, both with the same
context dict.  Transitions to the current state are ignored, and unknown
target states raise KeyError.
"""

from __future__ import annotations

from typing import Callable, Optional

from loguru import logger


class State:
    """Base state. Subclasses override the hooks they need."""

    def __init__(self, name: str) -> None:
        self.name = name

    def on_enter(self, ctx: dict) -> None:
        pass

    def on_exit(self, ctx: dict) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class StateMachine:
    def __init__(self, initial: str) -> None:
        self._states: dict[str, State] = {}
        self._current = initial
        self._entered = False
        self._listeners: list[Callable[[str, str], None]] = []

    @property
    def current_state(self) -> str:
        return self._current

    @property
    def state_names(self) -> list[str]:
        return list(self._states)

    def add_state(self, state: State) -> None:
        self._states[state.name] = state

    def get_state(self, name: str) -> Optional[State]:
        return self._states.get(name)

    def on_transition(self, listener: Callable[[str, str], None]) -> None:
        self._listeners.append(listener)

    def start(self, ctx: Optional[dict] = None) -> None:
        """Enter the initial state once."""
        if self._entered:
            return
        self._entered = True
        self._states[self._current].on_enter(ctx or {})

    def transition(self, target: str, ctx: Optional[dict] = None) -> bool:
        """Move to *target*. Returns False if already there."""
        if target not in self._states:
            raise KeyError(f"Unknown state: {target}")
        ctx = ctx or {}
        self.start(ctx)
        if target == self._current:
            return False

        previous = self._current
        self._states[previous].on_exit(ctx)
        self._current = target
        self._states[target].on_enter(ctx)
        logger.debug(f"State {previous} -> {target}")
        for listener in self._listeners:
            listener(previous, target)
        return True
