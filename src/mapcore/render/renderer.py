"""Renderer — the interface mapcore drives on the map rendering engine.

The real engine (tiles, canvas/WebGL drawing) lives outside this package.
HeadlessRenderer is an in-memory implementation that records the scene it
would draw; it backs the CLI demo and the tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from mapcore.layers.feature import Feature
from mapcore.render.style import HeatmapStyle, Style

Pixel = tuple[float, float]


class Renderer(Protocol):
    """Operations the core needs from the rendering engine."""

    def add_feature(self, feature: Feature) -> None: ...

    def remove_feature(self, feature: Feature) -> None: ...

    def set_style(self, feature: Feature, style: Optional[Style | list[Style]]) -> None: ...

    def update_geometry(self, feature: Feature) -> None: ...

    def add_overlay(self, overlay_id: str, payload: Any, pixel: Optional[Pixel]) -> None: ...

    def set_overlay_position(self, overlay_id: str, pixel: Pixel) -> None: ...

    def remove_overlay(self, overlay_id: str) -> None: ...

    def add_interaction(self, interaction: Any) -> None: ...

    def remove_interaction(self, interaction: Any) -> None: ...

    def set_layer_visible(self, layer: str, visible: bool) -> None: ...

    def set_layer_style(self, layer: str, style: Optional[Style]) -> None: ...

    def set_heatmap(self, style: HeatmapStyle) -> None: ...

    def set_cluster_scene(self, scene: list) -> None: ...

    def request_render(self) -> None: ...


@dataclass
class OverlayRecord:
    payload: Any
    position: Optional[Pixel] = None


@dataclass
class HeadlessRenderer:
    """Records what a renderer would draw."""

    features: dict[str, Feature] = field(default_factory=dict)
    styles: dict[str, Any] = field(default_factory=dict)
    overlays: dict[str, OverlayRecord] = field(default_factory=dict)
    interactions: list[Any] = field(default_factory=list)
    layer_visible: dict[str, bool] = field(default_factory=dict)
    layer_styles: dict[str, Optional[Style]] = field(default_factory=dict)
    heatmap: HeatmapStyle = field(default_factory=HeatmapStyle)
    clusters: list = field(default_factory=list)
    render_count: int = 0

    def add_feature(self, feature: Feature) -> None:
        self.features[feature.feature_id] = feature
        if feature.style is not None:
            self.styles[feature.feature_id] = feature.style

    def remove_feature(self, feature: Feature) -> None:
        self.features.pop(feature.feature_id, None)
        self.styles.pop(feature.feature_id, None)

    def set_style(self, feature: Feature, style) -> None:
        if style is None:
            self.styles.pop(feature.feature_id, None)
        else:
            self.styles[feature.feature_id] = style

    def update_geometry(self, feature: Feature) -> None:
        if feature.feature_id in self.features:
            self.features[feature.feature_id] = feature

    def add_overlay(self, overlay_id: str, payload: Any, pixel: Optional[Pixel]) -> None:
        self.overlays[overlay_id] = OverlayRecord(payload, pixel)

    def set_overlay_position(self, overlay_id: str, pixel: Pixel) -> None:
        record = self.overlays.get(overlay_id)
        if record is not None:
            record.position = pixel

    def remove_overlay(self, overlay_id: str) -> None:
        self.overlays.pop(overlay_id, None)

    def add_interaction(self, interaction: Any) -> None:
        self.interactions.append(interaction)

    def remove_interaction(self, interaction: Any) -> None:
        if interaction in self.interactions:
            self.interactions.remove(interaction)

    def set_layer_visible(self, layer: str, visible: bool) -> None:
        self.layer_visible[layer] = visible

    def set_layer_style(self, layer: str, style: Optional[Style]) -> None:
        self.layer_styles[layer] = style

    def set_heatmap(self, style: HeatmapStyle) -> None:
        self.heatmap = style

    def set_cluster_scene(self, scene: list) -> None:
        self.clusters = list(scene)

    def request_render(self) -> None:
        self.render_count += 1
