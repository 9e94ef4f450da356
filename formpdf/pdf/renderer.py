"""Raster previews of generated documents using PyMuPDF."""

from __future__ import annotations

from pathlib import Path

import fitz


class PdfRenderError(RuntimeError):
    """Raised when a page cannot be rendered."""


def render_page_png(path: str | Path, page_index: int = 0, zoom: float = 1.25) -> bytes:
    source = Path(path)
    try:
        document = fitz.open(source)
    except Exception as exc:
        raise PdfRenderError(f"Failed to open PDF: {source}") from exc

    try:
        if page_index < 0 or page_index >= document.page_count:
            raise PdfRenderError(f"Page index out of range: {page_index}")
        try:
            page = document.load_page(page_index)
            matrix = fitz.Matrix(zoom, zoom)
            pix = page.get_pixmap(matrix=matrix, alpha=False, annots=False)
            return pix.tobytes("png")
        except Exception as exc:  # pragma: no cover
            raise PdfRenderError(f"Failed to render page {page_index + 1}") from exc
    finally:
        document.close()


def write_preview(path: str | Path, target: str | Path, page_index: int = 0, zoom: float = 1.25) -> Path:
    output = Path(target)
    data = render_page_png(path, page_index=page_index, zoom=zoom)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(data)
    return output
