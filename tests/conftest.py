from __future__ import annotations

import base64
from io import BytesIO
from pathlib import Path

import fitz
from PIL import Image
import pytest

from formpdf.config.settings import Settings


def png_bytes(size: tuple[int, int] = (1, 1), color: tuple[int, int, int, int] = (0, 0, 0, 255)) -> bytes:
    buffer = BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def data_uri(payload: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(payload).decode("ascii")


def has_stroke(page: fitz.Page, rgb: tuple[float, float, float], tolerance: float = 0.01) -> bool:
    for drawing in page.get_drawings():
        color = drawing.get("color")
        if color and all(abs(a - b) <= tolerance for a, b in zip(color, rgb)):
            return True
    return False


def document_text(path: str | Path) -> str:
    with fitz.open(path) as document:
        return "\n".join(page.get_text() for page in document)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(output_dir=tmp_path / "generated", upload_root=tmp_path / "uploads")


@pytest.fixture
def one_pixel_uri() -> str:
    return data_uri(png_bytes())
