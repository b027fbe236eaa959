"""Shared fixtures for mapcore tests."""

from __future__ import annotations

import itertools
import random

import pytest

from mapcore.config import Settings
from mapcore.geo.projection import to_projected
from mapcore.geo.viewport import Viewport
from mapcore.interaction.controller import MapController
from mapcore.layers.store import FeatureStore
from mapcore.render.renderer import HeadlessRenderer
from mapcore.scheduler import ManualFrameScheduler

# Tiananmen, the default map center
BEIJING = (116.397428, 39.90923)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(_env_file=None, amap_key="")


@pytest.fixture
def viewport():
    return Viewport(center=to_projected(BEIJING), zoom=12, size=(1280, 800))


@pytest.fixture
def store():
    return FeatureStore()


@pytest.fixture
def renderer():
    return HeadlessRenderer()


@pytest.fixture
def scheduler():
    return ManualFrameScheduler(frame_ms=16.0)


@pytest.fixture
def order_ids():
    counter = itertools.count(1)
    return lambda: f"DD{next(counter):06d}"


@pytest.fixture
def controller(viewport, store, scheduler, renderer, settings, order_ids):
    return MapController(
        viewport=viewport,
        store=store,
        scheduler=scheduler,
        renderer=renderer,
        routing_service=None,
        rng=random.Random(1234),
        order_ids=order_ids,
        settings=settings,
    )
