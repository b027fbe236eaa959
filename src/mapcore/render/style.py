"""Style value types handed to the rendering engine.

These mirror the vocabulary of the canvas renderer (fill, stroke, circle
image, regular shape, icon, text) as immutable dataclasses so styles can
be compared in tests and built by pure functions.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Union

BLUE = "#3388ff"
WHITE = "#ffffff"
RED = "#ff0000"
GREEN = "#00ff00"
AMBER = "#ffcc33"
TRANSPARENT = "transparent"


@dataclass(frozen=True)
class Fill:
    color: str


@dataclass(frozen=True)
class Stroke:
    color: str
    width: float = 1.0
    line_dash: Optional[tuple[float, ...]] = None


@dataclass(frozen=True)
class Circle:
    radius: float
    fill: Optional[Fill] = None
    stroke: Optional[Stroke] = None


@dataclass(frozen=True)
class RegularShape:
    points: int
    radius: float
    fill: Optional[Fill] = None
    stroke: Optional[Stroke] = None
    rotation: float = 0.0


@dataclass(frozen=True)
class Icon:
    src: str
    scale: float = 1.0
    anchor: tuple[float, float] = (0.5, 0.5)
    rotation: float = 0.0
    rotate_with_view: bool = False


@dataclass(frozen=True)
class Text:
    text: str
    fill: Optional[Fill] = None
    stroke: Optional[Stroke] = None
    font: str = "bold 12px Arial"


Image = Union[Circle, RegularShape, Icon]


@dataclass(frozen=True)
class Style:
    image: Optional[Image] = None
    fill: Optional[Fill] = None
    stroke: Optional[Stroke] = None
    text: Optional[Text] = None


@dataclass(frozen=True)
class HeatmapStyle:
    blur: float = 15.0
    radius: float = 10.0
    gradient: tuple[str, ...] = field(default=("#00f", "#0ff", "#0f0", "#ff0", "#f00"))


def rgba(r: int, g: int, b: int, a: float) -> str:
    return f"rgba({r}, {g}, {b}, {a})"


# ---------------------------------------------------------------------------
# Stock styles
# ---------------------------------------------------------------------------

DEFAULT_POINT = Style(image=Circle(radius=6, fill=Fill(RED), stroke=Stroke(WHITE, 2)))

HIGHLIGHT_POINT = Style(image=Circle(radius=6, fill=Fill(AMBER), stroke=Stroke(WHITE, 2)))

ROUTE_LINE = Style(stroke=Stroke(BLUE, 4, line_dash=(8, 4)))

START_MARKER = Style(image=RegularShape(
    points=3, radius=10, fill=Fill(GREEN), stroke=Stroke(WHITE, 2), rotation=-math.pi / 2,
))

END_MARKER = Style(image=RegularShape(
    points=3, radius=10, fill=Fill(RED), stroke=Stroke(WHITE, 2), rotation=math.pi / 2,
))

SELECTION_POLYGON = Style(fill=Fill("rgba(255, 255, 255, 0.2)"), stroke=Stroke(AMBER, 2))

DRAWING_POLYGON = Style(
    fill=Fill("rgba(255, 255, 255, 0.2)"), stroke=Stroke(AMBER, 2, line_dash=(10, 10)),
)

GEOJSON_DEFAULT = Style(fill=Fill("rgba(51,136,255,0.5)"), stroke=Stroke(WHITE, 2))

RIDER_ICON_SRC = "/rider.png"


def rider_style(rotation: float = 0.0) -> Style:
    """Rider sprite anchored at its feet, rotated to the current heading."""
    return Style(image=Icon(
        src=RIDER_ICON_SRC, scale=0.5, anchor=(0.5, 1.0), rotation=rotation,
        rotate_with_view=False,
    ))


def geojson_style(fill: Optional[str] = None, stroke: Optional[str] = None,
                  opacity: float = 0.5) -> Style:
    """GeoJSON layer style from a ``#rrggbb`` fill plus opacity.

    The opacity is appended to the fill colour as a two-digit hex alpha.
    """
    if fill:
        alpha = max(0, min(255, round(opacity * 255)))
        fill_color = f"{fill}{alpha:02x}"
    else:
        fill_color = GEOJSON_DEFAULT.fill.color
    return Style(fill=Fill(fill_color), stroke=Stroke(stroke or WHITE, 2))
