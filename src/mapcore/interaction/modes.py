"""Interaction modes and the mode FSM factory.

Mode FSM:
  point <-> route <-> heatmap <-> box_select (any to any)

  Entering box_select attaches a fresh polygon draw interaction; leaving
  it detaches the interaction and drops the in-progress polygon.  Leaving
  route keeps the route on the map until clear_route().  Point and
  heatmap hold no transient state of their own.
"""

from __future__ import annotations

import enum

from mapcore.interaction.box_select import BoxSelector
from mapcore.interaction.state_machine import State, StateMachine


class Mode(str, enum.Enum):
    POINT = "point"
    ROUTE = "route"
    HEATMAP = "heatmap"
    BOX_SELECT = "box_select"

    @classmethod
    def parse(cls, value) -> Mode:
        """Accept Mode members, values, or the camelCase ``boxSelect``."""
        if isinstance(value, cls):
            return value
        if value == "boxSelect":
            return cls.BOX_SELECT
        return cls(value)


class BoxSelectState(State):
    """Draw interaction lives exactly as long as this state is active."""

    def __init__(self, selector: BoxSelector) -> None:
        super().__init__(Mode.BOX_SELECT.value)
        self._selector = selector

    def on_enter(self, ctx: dict) -> None:
        self._selector.start()

    def on_exit(self, ctx: dict) -> None:
        self._selector.stop()


def create_mode_fsm(selector: BoxSelector, initial: Mode = Mode.POINT) -> StateMachine:
    sm = StateMachine(initial.value)
    sm.add_state(State(Mode.POINT.value))
    sm.add_state(State(Mode.ROUTE.value))
    sm.add_state(State(Mode.HEATMAP.value))
    sm.add_state(BoxSelectState(selector))
    return sm
