"""Page geometry and the per-call render context."""

from __future__ import annotations

from dataclasses import dataclass
import math
from pathlib import Path

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm

BASE_CANVAS_WIDTH_PX = 795.0
BASE_CANVAS_HEIGHT_PX = float(round(BASE_CANVAS_WIDTH_PX * math.sqrt(2)))


@dataclass(frozen=True, slots=True)
class PageGeometry:
    page_width: float = A4[0]
    page_height: float = A4[1]
    margin: float = 15 * mm
    canvas_width_px: float = BASE_CANVAS_WIDTH_PX
    canvas_height_px: float = BASE_CANVAS_HEIGHT_PX
    points_per_pixel: float = 72 / 96
    heading_block: float = 72.0
    bare_heading_block: float = 24.0

    @property
    def printable_width(self) -> float:
        return self.page_width - self.margin * 2

    @property
    def printable_height(self) -> float:
        return self.page_height - self.margin * 2


@dataclass(frozen=True, slots=True)
class Rect:
    """Rectangle in points, measured from the top-left page corner."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def inset(self, dx: float, dy: float | None = None) -> Rect:
        dy = dx if dy is None else dy
        return Rect(
            self.x + dx,
            self.y + dy,
            max(0.0, self.width - dx * 2),
            max(0.0, self.height - dy * 2),
        )


@dataclass(frozen=True, slots=True)
class LayoutBounds:
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class RenderContext:
    output_path: Path
    geometry: PageGeometry
    bounds: LayoutBounds
    page_zoom: float
    scale: float
    points_per_pixel: float
    origin_x: float
    origin_y: float
    has_heading: bool
    title: str = ""
    description: str = ""

    @property
    def canvas_rect(self) -> Rect:
        return Rect(
            self.origin_x,
            self.origin_y,
            self.bounds.width * self.points_per_pixel,
            self.bounds.height * self.points_per_pixel,
        )

    @property
    def page_height(self) -> float:
        return self.geometry.page_height

    def scaled(self, size: float, minimum: float | None = None) -> float:
        """Scale a design-time spacing value, never below ``minimum``."""
        value = size * self.points_per_pixel
        return value if minimum is None else max(value, minimum)

    def font_size(self, size: float) -> float:
        return max(size * self.points_per_pixel, size * 0.85)
