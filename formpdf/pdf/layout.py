"""Layout bounds and fit-to-page scale derivation."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from formpdf.model.document import LayoutBounds, PageGeometry, Rect, RenderContext
from formpdf.model.field import TemplateField
from formpdf.pdf.units import to_points


def layout_bounds(fields: Iterable[TemplateField], geometry: PageGeometry) -> LayoutBounds:
    width = geometry.canvas_width_px
    height = geometry.canvas_height_px
    for field in fields:
        width = max(width, field.right)
        height = max(height, field.bottom)
    return LayoutBounds(width=width, height=height)


def heading_height(has_heading: bool, geometry: PageGeometry) -> float:
    return geometry.heading_block if has_heading else geometry.bare_heading_block


def fit_points_per_pixel(width_px: float, height_px: float, geometry: PageGeometry, has_heading: bool) -> float:
    """Largest points-per-pixel that keeps a ``width_px`` x ``height_px`` layout on the page."""
    available_height = geometry.printable_height - heading_height(has_heading, geometry)
    return min(geometry.printable_width / width_px, available_height / height_px)


def build_render_context(
    fields: Iterable[TemplateField],
    output_path: str | Path,
    meta: Mapping[str, Any] | None = None,
    geometry: PageGeometry | None = None,
) -> RenderContext:
    geometry = geometry or PageGeometry()
    meta = meta or {}
    title = str(meta.get("templateName") or meta.get("template_name") or "")
    description = str(meta.get("templateDescription") or meta.get("template_description") or "")
    has_heading = bool(title or description)

    bounds = layout_bounds(fields, geometry)
    ppp = fit_points_per_pixel(bounds.width, bounds.height, geometry, has_heading)
    base = fit_points_per_pixel(geometry.canvas_width_px, geometry.canvas_height_px, geometry, has_heading)
    # Relative to the base canvas: exactly 1.0 when every field fits inside it.
    scale = ppp / base
    zoom = base / geometry.points_per_pixel

    canvas_width = to_points(bounds.width, ppp)
    origin_x = geometry.margin + (geometry.printable_width - canvas_width) / 2
    origin_y = geometry.margin + heading_height(has_heading, geometry)

    return RenderContext(
        output_path=Path(output_path),
        geometry=geometry,
        bounds=bounds,
        page_zoom=zoom,
        scale=scale,
        points_per_pixel=ppp,
        origin_x=origin_x,
        origin_y=origin_y,
        has_heading=has_heading,
        title=title,
        description=description,
    )


def field_rect(field: TemplateField, context: RenderContext) -> Rect:
    ppp = context.points_per_pixel
    return Rect(
        context.origin_x + to_points(field.x, ppp),
        context.origin_y + to_points(field.y, ppp),
        to_points(field.width, ppp),
        to_points(field.height, ppp),
    )
