"""Tests for RouteAnimator — click cycle, planning races, rider animation."""

import asyncio
import math

import pytest

from mapcore.geo.projection import to_projected
from mapcore.layers import Category
from mapcore.route.animator import RouteAnimator, heading_between, normalize_heading
from mapcore.route.planner import RoutePlanner
from mapcore.route.rider import DeliveryStatus
from mapcore.scheduler import ManualFrameScheduler

pytestmark = pytest.mark.unit

A = (116.39, 39.90)
B = (116.42, 39.93)
WEST = (116.30, 39.90)


class _GatedService:
    """Routing service whose answer is held until the test releases it."""

    def __init__(self):
        self.gate = asyncio.Event()

    async def plan_route(self, origin, destination):
        await self.gate.wait()
        return [origin, destination]


def _animator(store, scheduler, viewport, renderer, order_ids, service=None):
    return RouteAnimator(
        store=store,
        planner=RoutePlanner(service),
        scheduler=scheduler,
        viewport=viewport,
        renderer=renderer,
        order_ids=order_ids,
    )


@pytest.fixture
def animator(store, scheduler, viewport, renderer, order_ids):
    return _animator(store, scheduler, viewport, renderer, order_ids)


async def _plan(animator, start=A, end=B):
    await animator.handle_route_point(start)
    return await animator.handle_route_point(end)


class TestHeading:

    @pytest.mark.parametrize("angle,expected", [
        (0.0, 0.0),
        (math.pi / 2, math.pi / 2),
        (math.pi, 0.0),
        (3 * math.pi / 4, -math.pi / 4),
        (-3 * math.pi / 4, math.pi / 4),
    ])
    def test_normalize(self, angle, expected):
        """Headings fold into [-pi/2, pi/2]."""
        assert normalize_heading(angle) == pytest.approx(expected, abs=1e-12)

    def test_range(self):
        """Every folded heading is within range."""
        for i in range(-36, 37):
            heading = normalize_heading(i * math.pi / 36)
            assert -math.pi / 2 <= heading <= math.pi / 2

    def test_heading_between_west(self):
        """Heading due west folds to zero."""
        assert heading_between((10.0, 0.0), (0.0, 0.0)) == pytest.approx(0.0)


class TestClickCycle:

    @pytest.mark.anyio
    async def test_first_click_places_start_marker(self, animator, store):
        """The first click places the start marker."""
        assert await animator.handle_route_point(A) is None
        assert animator.route_points.start == A
        assert len(store[Category.ROUTE]) == 1
        assert animator.start_marker.properties["type"] == "start"

    @pytest.mark.anyio
    async def test_second_click_plans_fallback_route(self, animator, store, renderer):
        """The second click plans the route and places the rider."""
        state = await _plan(animator)
        assert state is animator.state
        assert state.fallback
        assert state.path == [to_projected(A), to_projected(B)]
        assert state.duration == 5000.0
        assert not state.is_moving
        # start, end, line, rider
        assert len(store[Category.ROUTE]) == 4
        card = renderer.overlays["rider-info"]
        assert card.payload["status"] == "pending"
        assert card.position is not None

    @pytest.mark.anyio
    async def test_third_click_starts_over(self, animator, store, order_ids):
        """A third click starts a new route."""
        await _plan(animator)
        first_order = animator.rider.order_id
        await animator.handle_route_point(WEST)
        assert animator.state is None
        assert animator.route_points.start == WEST
        assert animator.route_points.end is None
        assert len(store[Category.ROUTE]) == 1
        assert animator.rider.order_id != first_order


class TestAnimation:

    @pytest.mark.anyio
    async def test_runs_to_completion(self, animator, scheduler, renderer):
        """The animation ends exactly on the last vertex."""
        state = await _plan(animator)
        assert animator.start_animation()
        assert animator.rider.status == DeliveryStatus.IN_TRANSIT

        fractions = []
        while scheduler.pending_count:
            scheduler.step()
            fractions.append(state.current_fraction)

        assert fractions == sorted(fractions)
        assert state.current_fraction == 1.0
        assert state.completed and not state.is_moving
        assert scheduler.now() <= state.duration + 2 * scheduler.frame_ms
        assert animator.rider_feature.coordinates == state.path[-1]
        assert animator.rider.status == DeliveryStatus.DELIVERED
        assert renderer.overlays["rider-info"].payload["status"] == "delivered"

    @pytest.mark.anyio
    async def test_rider_moves_along_path(self, animator, scheduler):
        """The rider moves along the path with easing."""
        state = await _plan(animator)
        animator.start_animation()
        scheduler.advance(2500)
        x, y = animator.rider_feature.coordinates
        (x0, y0), (x1, y1) = state.path
        assert x0 < x < x1
        assert y0 < y < y1
        # ease-out: more than half the distance at half the time
        assert (x - x0) / (x1 - x0) > 0.5

    @pytest.mark.anyio
    async def test_heading_stays_in_range(self, animator, scheduler):
        """The rider heading never leaves its range."""
        await _plan(animator, A, WEST)
        animator.start_animation()
        for _ in range(50):
            scheduler.step()
            assert -math.pi / 2 <= animator.state.heading <= math.pi / 2
            assert animator.rider_feature.style.image.rotation == animator.state.heading

    @pytest.mark.anyio
    async def test_stop_then_start_resumes_in_place(self, animator, scheduler):
        """Stopping pauses; starting resumes where it stopped."""
        state = await _plan(animator)
        animator.start_animation()
        scheduler.advance(1000)
        animator.stop_animation()
        paused_at = state.current_fraction
        assert 0 < paused_at < 1
        assert animator.rider.status == DeliveryStatus.PENDING
        assert not animator.frame_pending

        scheduler.advance(3000)
        assert state.current_fraction == paused_at

        animator.start_animation()
        scheduler.step()
        assert paused_at <= state.current_fraction < paused_at + 0.01

    @pytest.mark.anyio
    async def test_start_is_noop_while_moving(self, animator, scheduler):
        """Starting twice keeps one frame pending."""
        await _plan(animator)
        assert animator.start_animation()
        assert not animator.start_animation()
        assert scheduler.pending_count == 1

    @pytest.mark.anyio
    async def test_early_frames_are_not_skipped(self, store, viewport, renderer, order_ids):
        """Frames firing slightly under the interval still move the rider."""
        scheduler = ManualFrameScheduler(frame_ms=15.9)
        animator = _animator(store, scheduler, viewport, renderer, order_ids)
        await _plan(animator)
        animator.start_animation()
        positions = []
        for _ in range(10):
            scheduler.step()
            positions.append(animator.rider_feature.coordinates)
        assert all(a != b for a, b in zip(positions, positions[1:]))

    def test_start_without_route(self, animator):
        """Nothing starts without a route."""
        assert not animator.start_animation()

    @pytest.mark.anyio
    async def test_restart_after_completion(self, animator, scheduler):
        """A finished route restarts from the beginning."""
        state = await _plan(animator)
        animator.start_animation()
        scheduler.run_until_idle()
        assert state.completed
        assert animator.start_animation()
        assert state.current_fraction == 0.0
        assert not state.completed


class TestClearRoute:

    @pytest.mark.anyio
    async def test_clear_stops_ticks(self, animator, scheduler, store, renderer):
        """Clearing removes the route and stops frames."""
        await _plan(animator)
        animator.start_animation()
        scheduler.advance(100)
        animator.clear_route()

        assert animator.state is None
        assert animator.route_points.is_empty
        assert scheduler.pending_count == 0
        assert len(store[Category.ROUTE]) == 0
        assert "rider-info" not in renderer.overlays
        renders = renderer.render_count
        scheduler.advance(500)
        assert renderer.render_count == renders

    @pytest.mark.anyio
    async def test_clear_is_idempotent(self, animator, store):
        """Clearing twice is harmless."""
        await _plan(animator)
        animator.clear_route()
        order = animator.rider.order_id
        revision = store[Category.ROUTE].revision
        animator.clear_route()
        assert animator.rider.order_id == order
        assert store[Category.ROUTE].revision == revision

    def test_clear_on_fresh_animator_changes_nothing(self, animator):
        """Clearing an empty animator changes nothing."""
        order = animator.rider.order_id
        animator.clear_route()
        assert animator.rider.order_id == order

    @pytest.mark.anyio
    async def test_late_plan_is_discarded(self, store, scheduler, viewport, renderer, order_ids):
        """A plan that lands after clear is dropped."""
        service = _GatedService()
        animator = _animator(store, scheduler, viewport, renderer, order_ids, service)
        await animator.handle_route_point(A)
        task = asyncio.create_task(animator.handle_route_point(B))
        await asyncio.sleep(0)

        animator.clear_route()
        service.gate.set()

        assert await task is None
        assert animator.state is None
        assert len(store[Category.ROUTE]) == 0
        assert "rider-info" not in renderer.overlays

    @pytest.mark.anyio
    async def test_newer_plan_wins(self, store, scheduler, viewport, renderer, order_ids):
        """Only the newest plan is installed."""
        service = _GatedService()
        animator = _animator(store, scheduler, viewport, renderer, order_ids, service)
        first = asyncio.create_task(animator.plan_route(A, B))
        await asyncio.sleep(0)
        second = asyncio.create_task(animator.plan_route(A, WEST))
        await asyncio.sleep(0)
        service.gate.set()

        assert await first is None
        state = await second
        assert state.path[-1] == pytest.approx(to_projected(WEST))
