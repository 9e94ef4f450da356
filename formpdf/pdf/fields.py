"""Per-field drawing onto a reportlab canvas.

Coordinates handed around here are top-down ``Rect`` values in points, the
same orientation the template editor uses. They are flipped to reportlab's
bottom-left origin only at the drawing call.

Each field is drawn exactly once. Problems with a field's content (corrupt
images, unreadable attachments, odd value types) are logged and reported as a
``fallback`` outcome so the rest of the document still renders.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
import logging
import math
from pathlib import Path
from typing import Any

from PIL import Image
from reportlab.lib.colors import Color, HexColor
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from formpdf.model.document import Rect, RenderContext
from formpdf.model.field import FieldKind, TemplateField
from formpdf.model.submission import (
    Attachment,
    AttachmentsValue,
    FieldValue,
    FlagValue,
    RawValue,
    TextValue,
    is_signature_data,
)
from formpdf.pdf.layout import field_rect

logger = logging.getLogger(__name__)

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
FONT_ITALIC = "Helvetica-Oblique"
LINE_SPACING = 1.2

FRAME_FILL = HexColor("#fbfdff")
FRAME_STROKE = HexColor("#cbd5f5")
SURFACE_FILL = HexColor("#ffffff")
SURFACE_STROKE = HexColor("#dbeafe")
LABEL_COLOR = HexColor("#1e1b4b")
BODY_COLOR = HexColor("#1f2937")
VALUE_COLOR = HexColor("#0f172a")
MUTED_COLOR = HexColor("#94a3b8")
CHECK_COLOR = HexColor("#4338ca")
BADGE_FILL = HexColor("#fee2e2")
BADGE_STROKE = HexColor("#fca5a5")
BADGE_TEXT = HexColor("#b91c1c")

BADGE_TEXT_VALUE = "REQUIRED"
SIGNATURE_PLACEHOLDER = "Sign inside the box"
PHOTO_PLACEHOLDER = "No files uploaded"


class RenderStatus(str, Enum):
    RENDERED = "rendered"
    FALLBACK = "fallback"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class FieldOutcome:
    field_id: str
    kind: FieldKind | None
    status: RenderStatus
    detail: str = ""


@dataclass(frozen=True, slots=True)
class FrameLayout:
    frame: Rect
    label: Rect
    label_lines: tuple[str, ...]
    label_size: float
    content: Rect
    badge: Rect | None = None


def draw_round_rect(
    pdf: canvas.Canvas,
    rect: Rect,
    page_height: float,
    radius: float,
    fill: Color | None,
    stroke: Color | None,
    line_width: float = 1.0,
    dash: tuple[float, float] | None = None,
) -> None:
    if rect.width <= 0 or rect.height <= 0:
        return
    radius = max(0.0, min(radius, rect.width / 2, rect.height / 2))
    pdf.saveState()
    try:
        pdf.setLineWidth(line_width)
        if fill is not None:
            pdf.setFillColor(fill)
        if stroke is not None:
            pdf.setStrokeColor(stroke)
        if dash is not None:
            pdf.setDash(dash[0], dash[1])
        pdf.roundRect(
            rect.x,
            page_height - rect.bottom,
            rect.width,
            rect.height,
            radius,
            stroke=1 if stroke is not None else 0,
            fill=1 if fill is not None else 0,
        )
    finally:
        pdf.restoreState()


def wrap_text(text: str, font: str, size: float, width: float) -> list[str]:
    if width <= 0:
        return []
    lines: list[str] = []
    for paragraph in text.splitlines() or [""]:
        lines.extend(simpleSplit(paragraph, font, size, width) or [""])
    return lines


def draw_text_lines(
    pdf: canvas.Canvas,
    lines: Sequence[str],
    rect: Rect,
    page_height: float,
    font: str,
    size: float,
    color: Color,
    align: str = "left",
    clip: bool = True,
) -> None:
    """Draw lines top-down inside ``rect``; anything past the bottom is clipped."""
    if not lines or rect.width <= 0 or rect.height <= 0:
        return
    pdf.saveState()
    try:
        if clip:
            path = pdf.beginPath()
            path.rect(rect.x, page_height - rect.bottom, rect.width, rect.height)
            pdf.clipPath(path, stroke=0, fill=0)
        pdf.setFont(font, size)
        pdf.setFillColor(color)
        line_height = size * LINE_SPACING
        baseline = rect.y + size
        for line in lines:
            if baseline - size > rect.bottom:
                break
            y = page_height - baseline
            if align == "center":
                pdf.drawCentredString(rect.x + rect.width / 2, y, line)
            elif align == "right":
                pdf.drawRightString(rect.right, y, line)
            else:
                pdf.drawString(rect.x, y, line)
            baseline += line_height
    finally:
        pdf.restoreState()


def decode_data_uri(data_uri: str) -> Image.Image:
    header, separator, payload = data_uri.partition(",")
    if not separator or not payload.strip():
        raise ValueError(f"Data URI has no payload: {header[:40]!r}")
    raw = base64.b64decode(payload.strip(), validate=False)
    image = Image.open(BytesIO(raw))
    image.load()
    return image


class FieldRenderer:
    def __init__(self, pdf: canvas.Canvas, context: RenderContext) -> None:
        self._pdf = pdf
        self._context = context
        self._page_height = context.page_height

    def frame_layout(self, field: TemplateField, rect: Rect | None = None) -> FrameLayout:
        ctx = self._context
        rect = rect or field_rect(field, ctx)
        padding = ctx.scaled(16, 12)

        badge: Rect | None = None
        label_width = rect.width - padding * 2
        if field.required:
            badge_size = ctx.font_size(8)
            pad_x = ctx.scaled(6, 4)
            pad_y = ctx.scaled(3, 2)
            badge_width = pdfmetrics.stringWidth(BADGE_TEXT_VALUE, FONT_BOLD, badge_size) + pad_x * 2
            badge_height = badge_size + pad_y * 2
            badge = Rect(rect.right - padding - badge_width, rect.y + padding / 2, badge_width, badge_height)
            label_width = badge.x - ctx.scaled(6, 4) - (rect.x + padding)

        label_size = ctx.font_size(11)
        label_lines = tuple(wrap_text(field.display_label, FONT_BOLD, label_size, label_width)[:2])
        label_height = max(1, len(label_lines)) * label_size * LINE_SPACING
        label = Rect(rect.x + padding, rect.y + padding, max(0.0, label_width), label_height)

        content_top = label.bottom + ctx.scaled(8, 6)
        content_height = rect.bottom - padding - content_top
        minimum = ctx.scaled(28, 20)
        if content_height < minimum:
            content_height = min(minimum, max(0.0, rect.bottom - content_top))
        content = Rect(rect.x + padding, content_top, rect.width - padding * 2, content_height)
        return FrameLayout(rect, label, label_lines, label_size, content, badge)

    def render(
        self,
        field: TemplateField,
        value: FieldValue | None,
        signature: Any = None,
        attachments: Sequence[Attachment] = (),
        upload_root: str | Path | None = None,
    ) -> FieldOutcome:
        layout = self.frame_layout(field)
        self._draw_frame(layout)
        try:
            if field.kind is FieldKind.CHECKBOX:
                return self._draw_checkbox(field, layout.content, value)
            if field.kind is FieldKind.SIGNATURE:
                return self._draw_signature(field, layout.content, signature)
            if field.kind is FieldKind.PHOTO:
                return self._draw_photos(field, layout.content, value, attachments, upload_root)
            return self._draw_text(field, layout.content, value)
        except Exception as exc:
            logger.warning("Field %s (%s) content failed, left blank: %s", field.id, field.kind.value, exc)
            return FieldOutcome(field.id, field.kind, RenderStatus.FALLBACK, f"content error: {exc}")

    def _draw_frame(self, layout: FrameLayout) -> None:
        ctx = self._context
        draw_round_rect(
            self._pdf,
            layout.frame,
            self._page_height,
            ctx.scaled(14, 8),
            FRAME_FILL,
            FRAME_STROKE,
            line_width=max(1.0, 1.1 * ctx.points_per_pixel),
        )
        draw_text_lines(
            self._pdf,
            layout.label_lines,
            layout.label,
            self._page_height,
            FONT_BOLD,
            layout.label_size,
            LABEL_COLOR,
        )
        if layout.badge is not None:
            self._draw_badge(layout.badge)

    def _draw_badge(self, badge: Rect) -> None:
        ctx = self._context
        size = ctx.font_size(8)
        draw_round_rect(self._pdf, badge, self._page_height, ctx.scaled(6, 4), BADGE_FILL, BADGE_STROKE)
        self._pdf.saveState()
        try:
            self._pdf.setFont(FONT_BOLD, size)
            self._pdf.setFillColor(BADGE_TEXT)
            baseline = badge.y + badge.height / 2 + size * 0.35
            self._pdf.drawCentredString(badge.x + badge.width / 2, self._page_height - baseline, BADGE_TEXT_VALUE)
        finally:
            self._pdf.restoreState()

    def _draw_surface(self, rect: Rect, dashed: bool = False, radius: float | None = None) -> None:
        ctx = self._context
        s = ctx.points_per_pixel
        draw_round_rect(
            self._pdf,
            rect,
            self._page_height,
            ctx.scaled(10, 6) if radius is None else radius,
            SURFACE_FILL,
            SURFACE_STROKE,
            line_width=max(1.0, s),
            dash=(4 * s, 3 * s) if dashed else None,
        )

    def _draw_text(self, field: TemplateField, content: Rect, value: FieldValue | None) -> FieldOutcome:
        ctx = self._context
        self._draw_surface(content)
        status = RenderStatus.RENDERED
        detail = ""
        if isinstance(value, RawValue):
            status, detail = RenderStatus.FALLBACK, "unexpected value type"
            value = None

        text = value.text if isinstance(value, TextValue) else ""
        has_value = bool(text.strip())
        size = ctx.font_size(11 if field.kind is FieldKind.PARAGRAPH else 12)
        body = content.inset(ctx.scaled(10, 8))
        shown = text if has_value else field.placeholder
        lines = wrap_text(shown, FONT, size, body.width)
        draw_text_lines(
            self._pdf,
            lines,
            body,
            self._page_height,
            FONT,
            size,
            VALUE_COLOR if has_value else MUTED_COLOR,
        )
        if not detail:
            detail = "value" if has_value else "placeholder"
        return FieldOutcome(field.id, field.kind, status, detail)

    def _draw_checkbox(self, field: TemplateField, content: Rect, value: FieldValue | None) -> FieldOutcome:
        ctx = self._context
        s = ctx.points_per_pixel
        box_size = min(content.height, ctx.scaled(24, 14))
        box = Rect(content.x, content.y + (content.height - box_size) / 2, box_size, box_size)
        self._draw_surface(box, radius=ctx.scaled(6, 4))

        checked = isinstance(value, FlagValue) and value.checked
        if checked:
            inset = max(3.0, 2 * s)
            points = [
                (box.x + inset, box.y + box.height / 2),
                (box.x + box.width / 2, box.bottom - inset),
                (box.right - inset, box.y + inset),
            ]
            self._pdf.saveState()
            try:
                self._pdf.setStrokeColor(CHECK_COLOR)
                self._pdf.setLineWidth(max(2.0, 1.2 * s))
                self._pdf.setLineCap(1)
                self._pdf.setLineJoin(1)
                path = self._pdf.beginPath()
                path.moveTo(points[0][0], self._page_height - points[0][1])
                for x, y in points[1:]:
                    path.lineTo(x, self._page_height - y)
                self._pdf.drawPath(path, stroke=1, fill=0)
            finally:
                self._pdf.restoreState()

        size = ctx.font_size(11)
        gap = ctx.scaled(10, 8)
        label_area = Rect(box.right + gap, content.y, max(0.0, content.right - box.right - gap), content.height)
        lines = wrap_text(field.display_checkbox_label, FONT, size, label_area.width)[:1]
        text_top = content.y + (content.height - size * LINE_SPACING) / 2
        draw_text_lines(
            self._pdf,
            lines,
            Rect(label_area.x, max(content.y, text_top), label_area.width, content.bottom - max(content.y, text_top)),
            self._page_height,
            FONT,
            size,
            BODY_COLOR,
        )
        return FieldOutcome(field.id, field.kind, RenderStatus.RENDERED, "checked" if checked else "unchecked")

    def _draw_placeholder(self, text: str, rect: Rect) -> None:
        size = self._context.font_size(10)
        top = rect.y + (rect.height - size * LINE_SPACING) / 2
        draw_text_lines(
            self._pdf,
            wrap_text(text, FONT_ITALIC, size, rect.width),
            Rect(rect.x, max(rect.y, top), rect.width, rect.bottom - max(rect.y, top)),
            self._page_height,
            FONT_ITALIC,
            size,
            MUTED_COLOR,
            align="center",
        )

    def _draw_signature(self, field: TemplateField, content: Rect, signature: Any) -> FieldOutcome:
        self._draw_surface(content, dashed=True)
        if not is_signature_data(signature):
            self._draw_placeholder(SIGNATURE_PLACEHOLDER, content)
            status = RenderStatus.RENDERED if signature in (None, "") else RenderStatus.FALLBACK
            return FieldOutcome(field.id, field.kind, status, "placeholder")

        try:
            image = decode_data_uri(signature)
        except (ValueError, binascii.Error, OSError) as exc:
            logger.warning("Failed to decode signature for field %s: %s", field.id, exc)
            return FieldOutcome(field.id, field.kind, RenderStatus.FALLBACK, "signature could not be decoded")

        self._draw_image_fit(image, content.inset(self._context.scaled(4, 2)))
        return FieldOutcome(field.id, field.kind, RenderStatus.RENDERED, "signature")

    def _draw_image_fit(self, image: Image.Image, area: Rect) -> None:
        width, height = image.size
        if width <= 0 or height <= 0 or area.width <= 0 or area.height <= 0:
            return
        ratio = min(area.width / width, area.height / height)
        draw_w = width * ratio
        draw_h = height * ratio
        x = area.x + (area.width - draw_w) / 2
        top = area.y + (area.height - draw_h) / 2
        if image.mode not in ("RGB", "RGBA", "L"):
            image = image.convert("RGBA")
        self._pdf.drawImage(
            ImageReader(image),
            x,
            self._page_height - top - draw_h,
            width=draw_w,
            height=draw_h,
            mask="auto",
        )

    def _load_attachment(self, attachment: Attachment, upload_root: str | Path | None) -> Image.Image | None:
        try:
            if attachment.data:
                image = Image.open(BytesIO(attachment.data))
            else:
                path = attachment.resolve(upload_root)
                if path is None or not path.is_file():
                    logger.warning("Attachment %r for field %s not found", attachment.path, attachment.field_id)
                    return None
                image = Image.open(path)
            image.load()
            return image
        except (OSError, ValueError) as exc:
            logger.warning("Attachment %r for field %s is unreadable: %s", attachment.name, attachment.field_id, exc)
            return None

    def _draw_photos(
        self,
        field: TemplateField,
        content: Rect,
        value: FieldValue | None,
        attachments: Sequence[Attachment],
        upload_root: str | Path | None,
    ) -> FieldOutcome:
        ctx = self._context
        self._draw_surface(content, dashed=True)
        body = content.inset(ctx.scaled(10, 8))

        images = [self._load_attachment(attachment, upload_root) for attachment in attachments]
        missing = sum(1 for image in images if image is None)
        if images and missing < len(images):
            self._draw_photo_grid(body, attachments, images)
            if missing:
                return FieldOutcome(field.id, field.kind, RenderStatus.FALLBACK, f"{missing} unreadable attachment(s)")
            return FieldOutcome(field.id, field.kind, RenderStatus.RENDERED, f"{len(images)} photo(s)")

        names: list[str] = []
        if isinstance(value, AttachmentsValue):
            names = value.names()
        if not names:
            names = [attachment.name for attachment in attachments]
        if names:
            size = ctx.font_size(10)
            lines: list[str] = []
            for index, name in enumerate(names, start=1):
                lines.extend(wrap_text(f"{index}. {name}", FONT, size, body.width))
            draw_text_lines(self._pdf, lines, body, self._page_height, FONT, size, BODY_COLOR)
            status = RenderStatus.FALLBACK if attachments else RenderStatus.RENDERED
            return FieldOutcome(field.id, field.kind, status, "file list")

        self._draw_placeholder(PHOTO_PLACEHOLDER, content)
        status = RenderStatus.FALLBACK if isinstance(value, RawValue) else RenderStatus.RENDERED
        return FieldOutcome(field.id, field.kind, status, "placeholder")

    def _draw_photo_grid(
        self,
        area: Rect,
        attachments: Sequence[Attachment],
        images: Sequence[Image.Image | None],
    ) -> None:
        ctx = self._context
        columns = 2 if len(attachments) > 1 else 1
        rows = math.ceil(len(attachments) / columns)
        gap = ctx.scaled(8, 6)
        cell_w = (area.width - gap * (columns - 1)) / columns
        cell_h = (area.height - gap * (rows - 1)) / rows
        if cell_w <= 0 or cell_h <= 0:
            return

        caption_size = ctx.font_size(8)
        caption_h = caption_size * LINE_SPACING + ctx.scaled(4, 2)
        for index, (attachment, image) in enumerate(zip(attachments, images)):
            row, column = divmod(index, columns)
            cell = Rect(area.x + column * (cell_w + gap), area.y + row * (cell_h + gap), cell_w, cell_h)
            draw_round_rect(self._pdf, cell, self._page_height, ctx.scaled(6, 3), SURFACE_FILL, FRAME_STROKE)
            picture = Rect(cell.x, cell.y, cell.width, max(0.0, cell.height - caption_h)).inset(ctx.scaled(4, 2))
            if image is not None:
                self._draw_image_fit(image, picture)
            caption = Rect(cell.x + 2, cell.bottom - caption_h, max(0.0, cell.width - 4), caption_h)
            draw_text_lines(
                self._pdf,
                wrap_text(attachment.name, FONT, caption_size, caption.width)[:1],
                caption,
                self._page_height,
                FONT,
                caption_size,
                BODY_COLOR,
                align="center",
            )
