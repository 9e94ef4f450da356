from __future__ import annotations

from io import BytesIO
from pathlib import Path

import fitz
import pytest
from reportlab.pdfgen import canvas

from conftest import data_uri, document_text, has_stroke, png_bytes
from formpdf.config.settings import Settings
from formpdf.model.field import parse_field
from formpdf.pdf import fields as field_module
from formpdf.pdf.fields import CHECK_COLOR, FieldRenderer, RenderStatus
from formpdf.pdf.layout import build_render_context
from formpdf.pdf.writer import compose


def render_single(tmp_path: Path, settings: Settings, descriptor: dict, values=None, signatures=None):
    return compose(
        values or {},
        signatures or {},
        output_path=tmp_path / "single.pdf",
        template=[descriptor],
        settings=settings,
    )


def test_checked_checkbox_draws_check_mark(tmp_path: Path, settings: Settings) -> None:
    report = render_single(tmp_path, settings, {"id": 1, "type": "checkbox", "label": "Agree"}, {1: True})
    assert report.outcome_for(1).detail == "checked"
    with fitz.open(report.path) as document:
        assert has_stroke(document[0], CHECK_COLOR.rgb())


@pytest.mark.parametrize("values", [{1: False}, {}, {1: "off"}])
def test_unchecked_checkbox_has_no_check_mark(tmp_path: Path, settings: Settings, values: dict) -> None:
    report = render_single(tmp_path, settings, {"id": 1, "type": "checkbox", "label": "Agree"}, values)
    assert report.outcome_for(1).detail == "unchecked"
    with fitz.open(report.path) as document:
        assert not has_stroke(document[0], CHECK_COLOR.rgb())
    assert "Option" in document_text(report.path)


def test_plain_text_signature_never_decodes(tmp_path: Path, settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    def fail(_: str):
        raise AssertionError("decode attempted")

    monkeypatch.setattr(field_module, "decode_data_uri", fail)
    report = render_single(
        tmp_path, settings, {"id": 5, "type": "signature", "label": "Sign"}, signatures={5: "Jane Doe"}
    )
    outcome = report.outcome_for(5)
    assert outcome.detail == "placeholder"
    assert "Sign inside the box" in document_text(report.path)


def test_signature_image_is_embedded(tmp_path: Path, settings: Settings, one_pixel_uri: str) -> None:
    report = render_single(
        tmp_path, settings, {"id": 5, "type": "signature", "label": "Sign"}, signatures={5: one_pixel_uri}
    )
    assert report.outcome_for(5).status is RenderStatus.RENDERED
    with fitz.open(report.path) as document:
        assert document[0].get_images()
    assert "Sign inside the box" not in document_text(report.path)


@pytest.mark.parametrize(
    "signature",
    ["data:image/png;base64,bm90IGFuIGltYWdl", "data:image/png;base64", "data:image/png;base64,%%%"],
)
def test_corrupt_signature_falls_back(
    tmp_path: Path, settings: Settings, signature: str, caplog: pytest.LogCaptureFixture
) -> None:
    report = render_single(tmp_path, settings, {"id": 5, "type": "signature"}, signatures={5: signature})
    outcome = report.outcome_for(5)
    assert outcome.status is RenderStatus.FALLBACK
    assert "Failed to decode signature" in caplog.text
    assert report.path.stat().st_size > 0


def test_text_value_and_placeholder(tmp_path: Path, settings: Settings) -> None:
    template = [
        {"id": 1, "type": "text", "label": "Name", "placeholder": "Your name"},
        {"id": 2, "type": "paragraph", "label": "Notes", "placeholder": "Anything else"},
        {"id": 3, "type": "text", "label": "Tags"},
    ]
    report = compose(
        {1: "Jane Doe", 2: "   ", 3: ["red", "blue"]},
        {},
        output_path=tmp_path / "text.pdf",
        template=template,
        settings=settings,
    )
    text = document_text(report.path)
    assert "Jane Doe" in text
    assert "Your name" not in text
    assert "Anything else" in text
    assert "red, blue" in text
    assert report.outcome_for(2).detail == "placeholder"


def test_photo_grid_with_readable_and_missing_files(tmp_path: Path, settings: Settings) -> None:
    uploads = settings.upload_root / "uploads"
    uploads.mkdir(parents=True)
    (uploads / "front").write_bytes(png_bytes((4, 3), (200, 10, 10, 255)))
    files = [
        {"field": "7", "path": "/uploads/front", "originalname": "front.png"},
        {"field": "7", "path": "/uploads/missing", "originalname": "missing.png"},
        {"path": "/uploads/front", "originalname": "orphan.png"},
    ]
    report = compose(
        {"files": files},
        {},
        output_path=tmp_path / "photos.pdf",
        template=[{"id": 7, "type": "photo", "label": "Photos", "size": {"width": 500, "height": 400}}],
        settings=settings,
    )
    outcome = report.outcome_for(7)
    assert outcome.status is RenderStatus.FALLBACK
    assert outcome.detail == "1 unreadable attachment(s)"
    text = document_text(report.path)
    assert "front.png" in text
    assert "missing.png" in text
    assert "orphan.png" not in text
    with fitz.open(report.path) as document:
        assert document[0].get_images()


def test_photo_names_without_files_render_as_list(tmp_path: Path, settings: Settings) -> None:
    report = render_single(
        tmp_path,
        settings,
        {"id": 7, "type": "photo", "label": "Photos"},
        {7: [{"originalname": "scan.jpg"}, "receipt.pdf"]},
    )
    text = document_text(report.path)
    assert "1. scan.jpg" in text
    assert "2. receipt.pdf" in text
    assert report.outcome_for(7).detail == "file list"


def test_photo_without_anything_shows_placeholder(tmp_path: Path, settings: Settings) -> None:
    report = render_single(tmp_path, settings, {"id": 7, "type": "photo"})
    assert "No files uploaded" in document_text(report.path)
    assert report.outcome_for(7).status is RenderStatus.RENDERED


def test_attachment_bytes_are_embedded(tmp_path: Path, settings: Settings) -> None:
    report = compose(
        {},
        {},
        output_path=tmp_path / "bytes.pdf",
        template=[{"id": 7, "type": "photo"}],
        files=[{"field": 7, "originalname": "inline.png", "data": png_bytes((2, 2))}],
        settings=settings,
    )
    assert report.outcome_for(7).status is RenderStatus.RENDERED
    with fitz.open(report.path) as document:
        assert document[0].get_images()


@pytest.mark.parametrize("label", ["Name", "A much longer label that would otherwise run under the badge"])
def test_required_badge_does_not_overlap_label(label: str) -> None:
    field = parse_field(
        {"id": 1, "type": "text", "label": label, "required": True, "size": {"width": 160, "height": 60}}
    )
    context = build_render_context([field], "unused.pdf")
    renderer = FieldRenderer(canvas.Canvas(BytesIO()), context)
    layout = renderer.frame_layout(field)
    assert layout.badge is not None
    assert layout.label.right < layout.badge.x
    assert layout.badge.right <= layout.frame.right
    assert len(layout.label_lines) <= 2


def test_required_badge_is_drawn(tmp_path: Path, settings: Settings) -> None:
    report = render_single(tmp_path, settings, {"id": 1, "type": "text", "label": "Name", "required": True})
    assert "REQUIRED" in document_text(report.path)


def test_content_failure_is_reported_not_raised(
    tmp_path: Path, settings: Settings, monkeypatch: pytest.MonkeyPatch
) -> None:
    def boom(self, *args, **kwargs):
        raise RuntimeError("broken text engine")

    monkeypatch.setattr(FieldRenderer, "_draw_text", boom)
    report = compose(
        {1: "x", 2: True},
        {},
        output_path=tmp_path / "broken.pdf",
        template=[{"id": 1, "type": "text"}, {"id": 2, "type": "checkbox"}],
        settings=settings,
    )
    assert report.outcome_for(1).status is RenderStatus.FALLBACK
    assert report.outcome_for(2).status is RenderStatus.RENDERED
    assert report.path.exists()


def test_data_uri_helper_matches_prefix(one_pixel_uri: str) -> None:
    assert one_pixel_uri.startswith("data:image")
    assert field_module.decode_data_uri(data_uri(png_bytes((3, 2)))).size == (3, 2)
