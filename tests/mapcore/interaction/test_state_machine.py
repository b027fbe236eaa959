"""Tests for the state machine, the mode FSM and heatmap sampling."""

import random

import pytest
from pydantic import ValidationError

from mapcore.interaction.box_select import BoxSelector
from mapcore.interaction.heatmap import HeatmapSampler, HeatmapSettings
from mapcore.interaction.modes import Mode, create_mode_fsm
from mapcore.interaction.state_machine import State, StateMachine
from mapcore.layers import Category

pytestmark = pytest.mark.unit


class _Recording(State):
    def __init__(self, name, log):
        super().__init__(name)
        self.log = log

    def on_enter(self, ctx):
        self.log.append(("enter", self.name))

    def on_exit(self, ctx):
        self.log.append(("exit", self.name))


@pytest.fixture
def log():
    return []


@pytest.fixture
def machine(log):
    sm = StateMachine("idle")
    sm.add_state(_Recording("idle", log))
    sm.add_state(_Recording("busy", log))
    return sm


class TestStateMachine:

    def test_initial_state(self, machine):
        """The machine starts in its initial state."""
        assert machine.current_state == "idle"
        assert machine.state_names == ["idle", "busy"]

    def test_transition_runs_hooks_in_order(self, machine, log):
        """Exit runs before enter on a transition."""
        assert machine.transition("busy")
        assert log == [("enter", "idle"), ("exit", "idle"), ("enter", "busy")]

    def test_self_transition_is_ignored(self, machine, log):
        """Transitioning to the current state does nothing."""
        machine.start()
        assert not machine.transition("idle")
        assert log == [("enter", "idle")]

    def test_unknown_state(self, machine):
        """Unknown states raise KeyError."""
        with pytest.raises(KeyError):
            machine.transition("nowhere")

    def test_listeners(self, machine):
        """Listeners see every transition."""
        seen = []
        machine.on_transition(lambda a, b: seen.append((a, b)))
        machine.transition("busy")
        machine.transition("idle")
        assert seen == [("idle", "busy"), ("busy", "idle")]

    def test_get_state(self, machine):
        """States are looked up by name."""
        assert machine.get_state("busy").name == "busy"
        assert machine.get_state("nope") is None


class TestModeFSM:

    def test_parse(self):
        """Mode.parse accepts names and members."""
        assert Mode.parse("boxSelect") is Mode.BOX_SELECT
        assert Mode.parse("route") is Mode.ROUTE
        assert Mode.parse(Mode.HEATMAP) is Mode.HEATMAP
        with pytest.raises(ValueError):
            Mode.parse("lasso")

    def test_box_select_owns_interaction(self, store, renderer):
        """Box-select mode owns the draw interaction."""
        selector = BoxSelector(store, renderer)
        fsm = create_mode_fsm(selector)
        assert fsm.current_state == "point"

        fsm.transition(Mode.BOX_SELECT.value)
        assert selector.is_drawing
        assert len(renderer.interactions) == 1

        fsm.transition(Mode.HEATMAP.value)
        assert not selector.is_drawing
        assert renderer.interactions == []

    def test_every_mode_reachable_from_every_mode(self, store, renderer):
        """Any mode can follow any other."""
        fsm = create_mode_fsm(BoxSelector(store, renderer))
        for source in Mode:
            for target in Mode:
                fsm.transition(source.value)
                fsm.transition(target.value)
                assert fsm.current_state == target.value


class TestHeatmap:

    def test_add_point_weight_in_unit_interval(self, store, renderer):
        """Sample weights fall in [0, 1)."""
        sampler = HeatmapSampler(store, renderer, random.Random(5))
        weights = [sampler.add_point((116.4, 39.9)).weight for _ in range(50)]
        assert all(0.0 <= w < 1.0 for w in weights)
        assert len(store[Category.HEAT]) == 50

    def test_settings_pushed_to_renderer(self, store, renderer):
        """Settings changes reach the renderer."""
        sampler = HeatmapSampler(store, renderer)
        assert renderer.heatmap.blur == 15.0
        sampler.add_point((116.4, 39.9))
        sampler.update_settings(blur=30, radius=5)
        assert renderer.heatmap.blur == 30
        assert renderer.heatmap.radius == 5
        assert len(store[Category.HEAT]) == 1

    def test_invalid_settings(self):
        """Negative blur fails validation."""
        with pytest.raises(ValidationError):
            HeatmapSettings(blur=-1)

    def test_clear(self, store, renderer):
        """Clearing the heatmap twice is harmless."""
        sampler = HeatmapSampler(store, renderer)
        sampler.add_point((0, 0))
        sampler.clear()
        sampler.clear()
        assert len(store[Category.HEAT]) == 0
