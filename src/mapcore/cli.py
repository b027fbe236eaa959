"""Headless demo session.

Usage:
    python -m mapcore demo [--geojson PATH] [--no-routing] [--points N]

Drives a MapController against a HeadlessRenderer and a manual frame
clock: loads GeoJSON, places points, clusters them, plans and animates a
route, box-selects, then prints a summary of the resulting scene.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import random
import sys
from pathlib import Path

from loguru import logger

from mapcore.config import settings
from mapcore.geo.projection import to_geographic
from mapcore.geo.viewport import Viewport
from mapcore.interaction.controller import MapController
from mapcore.interaction.modes import Mode
from mapcore.logging_config import setup_logging
from mapcore.render.renderer import HeadlessRenderer
from mapcore.route.service import AMapRoutingService
from mapcore.scheduler import ManualFrameScheduler

# Route demo endpoints: Tiananmen -> Beijing Railway Station
_ROUTE_FROM = (116.397428, 39.90923)
_ROUTE_TO = (116.427287, 39.902779)


async def run_demo(args: argparse.Namespace) -> dict:
    rng = random.Random(args.seed)
    scheduler = ManualFrameScheduler(frame_ms=settings.frame_interval_ms)
    renderer = HeadlessRenderer()
    viewport = Viewport.from_settings(settings, size=(1280, 800))
    service = AMapRoutingService.from_settings(settings) if args.routing else None

    ctl = MapController(
        viewport=viewport,
        scheduler=scheduler,
        renderer=renderer,
        routing_service=service,
        rng=rng,
    )

    if args.geojson:
        count = ctl.load_geojson(Path(args.geojson).read_text(encoding="utf-8"))
        print(f"  GeoJSON features: {count}")

    # Points scattered around the view center
    ctl.set_mode(Mode.POINT)
    cx, cy = viewport.center
    for _ in range(args.points):
        dx = rng.uniform(-300, 300) * viewport.resolution
        dy = rng.uniform(-200, 200) * viewport.resolution
        await ctl.on_viewport_click(to_geographic((cx + dx, cy + dy)))
    ctl.close_popup()

    ctl.toggle_cluster(True)
    scheduler.step()
    groups = ctl.cluster_groups()
    print(f"  Points: {args.points} -> {len(groups)} clusters "
          f"(largest {max((g.size for g in groups), default=0)})")

    # Route
    ctl.set_mode(Mode.ROUTE)
    await ctl.on_viewport_click(_ROUTE_FROM)
    await ctl.on_viewport_click(_ROUTE_TO)
    state = ctl.animation_state
    print(f"  Route: {len(state.path)} vertices, {state.duration:.0f}ms"
          f"{' (straight-line fallback)' if state.fallback else ''}")
    ctl.start_animation()
    scheduler.advance(state.duration + 2 * scheduler.frame_ms)
    print(f"  Rider: {ctl.route.rider.order_id} {ctl.route.rider.status.label} "
          f"(fraction {state.current_fraction:.2f})")

    # Box select the middle of the view
    ctl.set_mode(Mode.BOX_SELECT)
    w = 200 * viewport.resolution
    ring = [(cx - w, cy - w), (cx + w, cy - w), (cx + w, cy + w), (cx - w, cy + w)]
    for vertex in ring:
        ctl.box_select.interaction.add_vertex(vertex)
    area = ctl.box_select.interaction.finish()
    print(f"  Box select: {area.count} points")

    ctl.toggle_cluster(False)
    return {
        "features": {layer.category.value: len(layer) for layer in ctl.store.layers()},
        "renders": renderer.render_count,
        "frames": scheduler.frames_run,
        "selected": area.count,
        "view_center": to_geographic(viewport.center),
        "route_start": to_geographic(state.path[0]),
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="mapcore", description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    demo = sub.add_parser("demo", help="run a scripted headless session")
    demo.add_argument("--geojson", help="GeoJSON file to load first")
    demo.add_argument("--points", type=int, default=25, help="points to place")
    demo.add_argument("--seed", type=int, default=7, help="random seed")
    demo.add_argument("--no-routing", dest="routing", action="store_false",
                      help="skip the routing service (straight-line route)")
    demo.add_argument("--log-level", default=settings.log_level)

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    print(f"\n{'='*60}\n  mapcore demo\n{'='*60}")
    try:
        summary = asyncio.run(run_demo(args))
    except Exception as exc:
        logger.exception(f"Demo failed: {exc}")
        return 1
    print(json.dumps(summary, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
