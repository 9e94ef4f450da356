"""Seed a canvas template from the AcroForm widgets of an existing PDF."""

from __future__ import annotations

from pathlib import Path

from pypdf import PdfReader

from formpdf.model.document import BASE_CANVAS_WIDTH_PX
from formpdf.model.field import FieldKind, TemplateField
from formpdf.pdf.units import to_pixels

PUSHBUTTON_FLAG = 1 << 16

WIDGET_KINDS = {
    "/Tx": FieldKind.TEXT,
    "/Btn": FieldKind.CHECKBOX,
    "/Sig": FieldKind.SIGNATURE,
}


class PdfImportError(RuntimeError):
    """Raised when existing form fields cannot be imported."""


def import_template_fields(source_path: str | Path, page_index: int = 0) -> list[TemplateField]:
    source = Path(source_path)
    imported: list[TemplateField] = []

    try:
        reader = PdfReader(str(source))
        page = reader.pages[page_index]
        page_width = float(page.mediabox.width)
        page_height = float(page.mediabox.height)
        # The whole page maps onto the base canvas width.
        scale = page_width / BASE_CANVAS_WIDTH_PX

        annots = page.get("/Annots") or []
        for annot_ref in annots:
            annot = annot_ref.get_object()
            if annot.get("/Subtype") != "/Widget":
                continue

            parent = annot.get("/Parent")
            parent_obj = parent.get_object() if parent is not None else None

            field_type = annot.get("/FT") or (parent_obj.get("/FT") if parent_obj else None)
            rect = annot.get("/Rect")
            if field_type is None or rect is None:
                continue
            kind = WIDGET_KINDS.get(str(field_type))
            if kind is None:
                continue

            flags = annot.get("/Ff")
            if flags is None and parent_obj is not None:
                flags = parent_obj.get("/Ff")
            flags = int(flags or 0)
            if kind is FieldKind.CHECKBOX and flags & PUSHBUTTON_FLAG:
                continue

            llx, lly, urx, ury = (float(value) for value in rect)
            left, right = sorted((llx, urx))
            bottom, top = sorted((lly, ury))
            name = str(annot.get("/T") or (parent_obj.get("/T") if parent_obj else "") or "")
            field_id = name or str(len(imported) + 1)

            imported.append(
                TemplateField(
                    id=field_id,
                    kind=kind,
                    x=to_pixels(left - float(page.mediabox.left), scale),
                    y=to_pixels(page_height - (top - float(page.mediabox.bottom)), scale),
                    width=to_pixels(right - left, scale),
                    height=to_pixels(top - bottom, scale),
                    label=name,
                    required=bool(flags & 2),
                )
            )
    except Exception as exc:
        raise PdfImportError(f"Failed to import form fields from: {source}") from exc

    return imported
