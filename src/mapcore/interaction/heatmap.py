"""Heatmap sampling — weighted point samples plus blur/radius settings."""

from __future__ import annotations

import random
from typing import Optional

from pydantic import BaseModel, Field

from mapcore.geo.projection import to_projected
from mapcore.layers.feature import Category, Feature
from mapcore.layers.store import FeatureStore
from mapcore.render.style import HeatmapStyle


class HeatmapSettings(BaseModel):
    """Heatmap rendering parameters."""
    blur: float = Field(default=15.0, ge=0)
    radius: float = Field(default=10.0, ge=0)
    gradient: tuple[str, ...] = ("#00f", "#0ff", "#0f0", "#ff0", "#f00")

    def to_style(self) -> HeatmapStyle:
        return HeatmapStyle(blur=self.blur, radius=self.radius, gradient=self.gradient)


class HeatmapSampler:
    def __init__(self, store: FeatureStore, renderer,
                 rng: Optional[random.Random] = None,
                 settings: Optional[HeatmapSettings] = None) -> None:
        self._layer = store[Category.HEAT]
        self._renderer = renderer
        self._rng = rng or random.Random()
        self.settings = settings or HeatmapSettings()
        self._renderer.set_heatmap(self.settings.to_style())

    def add_point(self, coord) -> Feature:
        """Add a sample at geographic *coord* with a random weight in [0, 1)."""
        feature = Feature.point(
            to_projected(coord), Category.HEAT, weight=self._rng.random(),
        )
        self._layer.add(feature)
        return feature

    def update_settings(self, blur: float, radius: float) -> HeatmapSettings:
        """Set blur and radius directly; samples are not touched."""
        self.settings = HeatmapSettings(blur=blur, radius=radius, gradient=self.settings.gradient)
        self._renderer.set_heatmap(self.settings.to_style())
        self._renderer.request_render()
        return self.settings

    def clear(self) -> None:
        self._layer.clear()
