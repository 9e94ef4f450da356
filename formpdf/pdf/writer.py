"""Compose a filled, signed submission into a flattened A4 PDF."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
import logging
import os
from pathlib import Path
import re
import tempfile
import time
from typing import Any

from reportlab.lib.colors import HexColor
from reportlab.pdfgen import canvas

from formpdf.config.settings import Settings, get_settings
from formpdf.model.document import PageGeometry, Rect, RenderContext
from formpdf.model.field import TemplateField, parse_template
from formpdf.model.submission import format_value
from formpdf.pdf.fields import (
    FONT,
    FONT_BOLD,
    LABEL_COLOR,
    LINE_SPACING,
    MUTED_COLOR,
    FieldOutcome,
    FieldRenderer,
    RenderStatus,
    draw_round_rect,
    draw_text_lines,
    wrap_text,
)
from formpdf.pdf.layout import build_render_context
from formpdf.state.submission import NormalizedSubmission, normalize_submission

logger = logging.getLogger(__name__)

BACKDROP_FILL = HexColor("#f8fafc")
BACKDROP_STROKE = HexColor("#e2e8f0")
DESCRIPTION_COLOR = HexColor("#475569")
APPENDIX_COLOR = HexColor("#334155")


class PdfWriteError(RuntimeError):
    """Raised when output generation fails."""


@dataclass(frozen=True, slots=True)
class RenderReport:
    path: Path
    outcomes: tuple[FieldOutcome, ...]
    pages: int

    def outcome_for(self, field_id: Any) -> FieldOutcome | None:
        key = str(field_id)
        found = None
        for outcome in self.outcomes:
            if outcome.field_id == key:
                found = outcome
        return found


def humanize_key(key: str) -> str:
    return re.sub(r"\b\w", lambda match: match.group(0).upper(), key.replace("_", " "))


def default_output_path(settings: Settings) -> Path:
    return Path(settings.output_dir) / f"form_{int(time.time() * 1000)}.pdf"


class DocumentComposer:
    def __init__(
        self,
        context: RenderContext,
        submission: NormalizedSubmission,
        generated_at: datetime | None = None,
    ) -> None:
        self._context = context
        self._submission = submission
        self._generated_at = generated_at or datetime.now()
        self._geometry = context.geometry
        self._page_height = context.page_height

    def compose(self) -> tuple[bytes, list[FieldOutcome], int]:
        buffer = BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=(self._geometry.page_width, self._geometry.page_height))
        pdf.setTitle(self._context.title or "Form submission")
        pdf.setCreator("formpdf")
        if self._context.description:
            pdf.setSubject(self._context.description)

        self._draw_heading(pdf)
        self._draw_backdrop(pdf)

        renderer = FieldRenderer(pdf, self._context)
        outcomes: list[FieldOutcome] = []
        # Template order is paint order: later fields cover earlier ones.
        for field in self._submission.fields:
            outcomes.append(self._render_field(renderer, field))

        self._draw_appendix(pdf)
        self._draw_footer(pdf)
        pages = pdf.getPageNumber()
        pdf.showPage()
        pdf.save()
        return buffer.getvalue(), outcomes, pages

    def _render_field(self, renderer: FieldRenderer, field: TemplateField) -> FieldOutcome:
        submission = self._submission
        value = submission.resolved_value(field)
        return renderer.render(
            field,
            value,
            signature=submission.signature_for(field),
            attachments=submission.attachments_for(field),
            upload_root=submission.upload_root,
        )

    def _draw_heading(self, pdf: canvas.Canvas) -> None:
        ctx = self._context
        if not ctx.has_heading:
            return
        geometry = self._geometry
        width = geometry.printable_width
        top = geometry.margin + ctx.scaled(8, 6)

        if ctx.title:
            size = ctx.font_size(18)
            block = Rect(geometry.margin, top, width, size * LINE_SPACING)
            lines = wrap_text(ctx.title, FONT_BOLD, size, width)[:1]
            draw_text_lines(pdf, lines, block, self._page_height, FONT_BOLD, size, LABEL_COLOR, align="center")
            top = block.bottom + ctx.scaled(4, 3)

        if ctx.description:
            size = ctx.font_size(10)
            bottom = geometry.margin + geometry.heading_block
            block = Rect(geometry.margin, top, width, max(0.0, bottom - top))
            lines = wrap_text(ctx.description, FONT, size, width)[:2]
            draw_text_lines(pdf, lines, block, self._page_height, FONT, size, DESCRIPTION_COLOR, align="center")

    def _draw_backdrop(self, pdf: canvas.Canvas) -> None:
        ctx = self._context
        draw_round_rect(
            pdf,
            ctx.canvas_rect,
            self._page_height,
            ctx.scaled(18, 12),
            BACKDROP_FILL,
            BACKDROP_STROKE,
        )

    def _draw_appendix(self, pdf: canvas.Canvas) -> None:
        items = self._submission.untracked_items()
        if not items:
            return
        ctx = self._context
        geometry = self._geometry
        width = geometry.printable_width
        limit = self._page_height - geometry.margin
        heading_size = ctx.font_size(12)
        size = ctx.font_size(10)
        line_height = size * LINE_SPACING
        cursor = ctx.canvas_rect.bottom + ctx.scaled(24, 16)

        def new_page() -> float:
            self._draw_footer(pdf)
            pdf.showPage()
            return geometry.margin

        if cursor + heading_size * LINE_SPACING + line_height > limit:
            cursor = new_page()
        heading = Rect(geometry.margin, cursor, width, heading_size * LINE_SPACING)
        draw_text_lines(pdf, ["Additional data"], heading, self._page_height, FONT_BOLD, heading_size, LABEL_COLOR)
        cursor = heading.bottom + ctx.scaled(8, 6)

        for key, value in items:
            lines = wrap_text(f"{humanize_key(key)}: {format_value(value)}", FONT, size, width)
            for line in lines:
                if cursor + line_height > limit:
                    cursor = new_page()
                block = Rect(geometry.margin, cursor, width, line_height)
                draw_text_lines(pdf, [line], block, self._page_height, FONT, size, APPENDIX_COLOR)
                cursor = block.bottom
            cursor += ctx.scaled(4, 4)

        logger.debug("Appended %d untracked value(s)", len(items))

    def _draw_footer(self, pdf: canvas.Canvas) -> None:
        size = self._context.font_size(9)
        geometry = self._geometry
        text = f"Generated on {self._generated_at.strftime('%Y-%m-%d %H:%M:%S')}"
        pdf.saveState()
        try:
            pdf.setFont(FONT, size)
            pdf.setFillColor(MUTED_COLOR)
            pdf.drawRightString(geometry.page_width - geometry.margin, geometry.margin / 2 - size * 0.35, text)
        finally:
            pdf.restoreState()


def _write_output(target: Path, payload: bytes) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise PdfWriteError(f"Cannot create output directory: {target.parent}") from exc

    temp_path: Path | None = None
    try:
        fd, temp_name = tempfile.mkstemp(prefix=".pdf_work_", suffix=".pdf", dir=target.parent)
        os.close(fd)
        temp_path = Path(temp_name)
        with temp_path.open("wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, target)
    except OSError as exc:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink()
        raise PdfWriteError(f"Failed to write output PDF: {target}") from exc


def compose(
    values: Mapping[Any, Any] | None,
    signatures: Mapping[Any, Any] | None = None,
    *,
    output_path: str | Path | None = None,
    template: Sequence[Any] | None = None,
    meta: Mapping[str, Any] | None = None,
    files: Iterable[Any] | None = None,
    geometry: PageGeometry | None = None,
    settings: Settings | None = None,
    generated_at: datetime | None = None,
) -> RenderReport:
    settings = settings or get_settings()
    target = Path(output_path) if output_path else default_output_path(settings)

    fields, invalid = parse_template(template)
    skipped = [FieldOutcome(f"#{index}", None, RenderStatus.SKIPPED, reason) for index, reason in invalid]
    submission = normalize_submission(fields, values, signatures, files, upload_root=settings.upload_root)

    try:
        context = build_render_context(fields, target, meta, geometry)
        logger.debug(
            "Rendering %d field(s) at scale %.4f (%.4f pt/px)",
            len(fields),
            context.scale,
            context.points_per_pixel,
        )
        payload, outcomes, pages = DocumentComposer(context, submission, generated_at).compose()
    except Exception as exc:
        raise PdfWriteError(f"Failed to build output PDF: {target}") from exc

    _write_output(target, payload)
    logger.info("Wrote %s (%d page(s), %d field(s))", target, pages, len(fields))
    return RenderReport(path=target, outcomes=tuple(skipped + outcomes), pages=pages)


def generate(
    values: Mapping[Any, Any] | None,
    signatures: Mapping[Any, Any] | None = None,
    *,
    output_path: str | Path | None = None,
    template: Sequence[Any] | None = None,
    meta: Mapping[str, Any] | None = None,
    files: Iterable[Any] | None = None,
) -> str:
    report = compose(values, signatures, output_path=output_path, template=template, meta=meta, files=files)
    return str(report.path)


def validate(path: str | Path) -> bool:
    try:
        return Path(path).stat().st_size > 0
    except OSError:
        return False
