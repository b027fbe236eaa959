"""Tests for BoxSelector — polygon draw, coarse/fine query, highlight."""

import pytest

from mapcore.geo.geometry import point_in_polygon
from mapcore.interaction.box_select import BoxSelector
from mapcore.layers import Category, Feature
from mapcore.render.style import HIGHLIGHT_POINT

pytestmark = pytest.mark.unit

SQUARE = [(0.0, 0.0), (1000.0, 0.0), (1000.0, 1000.0), (0.0, 1000.0)]


@pytest.fixture
def selector(store, renderer):
    return BoxSelector(store, renderer)


@pytest.fixture
def points(store):
    layer = store[Category.POINTS]
    layer.add_many([
        Feature.point((100, 100), feature_id="in-1"),
        Feature.point((900, 500), feature_id="in-2"),
        Feature.point((1000, 500), feature_id="edge"),
        Feature.point((1500, 500), feature_id="out-1"),
        Feature.point((-20, -20), feature_id="out-2"),
    ])
    return layer


def _draw(interaction, ring):
    for vertex in ring:
        interaction.add_vertex(vertex)
    return interaction.finish()


class TestSelection:

    def test_selects_points_inside(self, selector, points, store):
        """Points inside or on the polygon are selected and highlighted."""
        interaction = selector.start()
        area = _draw(interaction, SQUARE)

        assert area.count == 3
        assert sorted(area.selected_ids) == ["edge", "in-1", "in-2"]
        assert points.get("in-1").style is HIGHLIGHT_POINT
        assert points.get("out-1").style is None
        assert len(store[Category.SELECTION]) == 1
        assert area.polygon[0] == area.polygon[-1]
        assert len(area.contained_ring_geographic) == 5

    def test_geometry_untouched(self, selector, points):
        """Selection restyles features without moving them."""
        before = {f.feature_id: f.coordinates for f in points}
        _draw(selector.start(), SQUARE)
        assert {f.feature_id: f.coordinates for f in points} == before

    def test_count_matches_brute_force(self, selector, store):
        """Coarse plus exact query agrees with a full scan."""
        layer = store[Category.POINTS]
        layer.add_many([
            Feature.point((x * 137.0 % 2000 - 500, x * 71.0 % 2000 - 500))
            for x in range(200)
        ])
        triangle = [(0.0, 0.0), (1200.0, 100.0), (300.0, 900.0)]
        area = _draw(selector.start(), triangle)

        expected = sum(point_in_polygon(f.coordinates, triangle + [triangle[0]]) for f in layer)
        assert area.count == expected
        assert sum(f.style is HIGHLIGHT_POINT for f in layer) == expected

    def test_redraw_replaces_selection(self, selector, points, store):
        """A second polygon replaces the first selection."""
        _draw(selector.start(), SQUARE)
        small = [(50.0, 50.0), (150.0, 50.0), (150.0, 150.0), (50.0, 150.0)]
        area = _draw(selector.interaction, small)

        assert area.selected_ids == ["in-1"]
        assert points.get("in-2").style is None
        assert len(store[Category.SELECTION]) == 1

    def test_too_few_vertices(self, selector):
        """Fewer than three distinct vertices is an error."""
        interaction = selector.start()
        interaction.add_vertex((0, 0))
        interaction.add_vertex((1, 1))
        interaction.add_vertex((1, 1))
        with pytest.raises(ValueError):
            interaction.finish()


class TestLifecycle:

    def test_start_attaches_interaction(self, selector, renderer):
        """start() attaches a draw interaction."""
        interaction = selector.start()
        assert selector.is_drawing
        assert renderer.interactions == [interaction]

    def test_restart_replaces_interaction(self, selector, renderer):
        """Starting again replaces the old interaction."""
        first = selector.start()
        second = selector.start()
        assert renderer.interactions == [second]
        assert not first.active

    def test_stop_discards_in_progress_polygon(self, selector, renderer, store):
        """stop() drops the half-drawn polygon."""
        interaction = selector.start()
        interaction.add_vertex((0, 0))
        selector.stop()
        selector.stop()
        assert not selector.is_drawing
        assert renderer.interactions == []
        assert interaction.vertices == []
        assert interaction.finish() is None
        assert len(store[Category.SELECTION]) == 0

    def test_clear_selection(self, selector, points, store):
        """Clearing resets highlights and is idempotent."""
        _draw(selector.start(), SQUARE)
        selector.clear_selection()
        assert selector.area is None
        assert len(store[Category.SELECTION]) == 0
        assert all(f.style is None for f in points)
        revision = points.revision
        selector.clear_selection()
        assert points.revision == revision
