"""Command line entry point.

Usage:
    formpdf render --template template.json --values values.json [-o out.pdf]
    formpdf import-template fillable.pdf [-o template.json]
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from formpdf.config.settings import get_settings
from formpdf.model.field import field_to_descriptor
from formpdf.pdf.fields import RenderStatus
from formpdf.pdf.importer import PdfImportError, import_template_fields
from formpdf.pdf.renderer import PdfRenderError, write_preview
from formpdf.pdf.writer import PdfWriteError, compose

logger = logging.getLogger("formpdf")


def _load_json(path: str | None, default: Any) -> Any:
    if not path:
        return default
    with open(path, encoding="utf-8") as handle:
        return json.load(handle)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="formpdf", description="Render form submissions to PDF.")
    commands = parser.add_subparsers(dest="command", required=True)

    render = commands.add_parser("render", help="render a submission to PDF")
    render.add_argument("--template", required=True, help="JSON file with the ordered field list")
    render.add_argument("--values", help="JSON file with submitted values keyed by field id")
    render.add_argument("--signatures", help="JSON file with signature data URIs keyed by field id")
    render.add_argument("--name", help="template name shown in the heading")
    render.add_argument("--description", help="template description shown in the heading")
    render.add_argument("-o", "--output", help="target PDF path")
    render.add_argument("--preview", help="also write a PNG preview of the first page")

    importer = commands.add_parser("import-template", help="build a template from a fillable PDF")
    importer.add_argument("source", help="PDF with AcroForm fields")
    importer.add_argument("--page", type=int, default=0, help="page index to import")
    importer.add_argument("-o", "--output", help="template JSON path (defaults to stdout)")
    return parser


def _render(args: argparse.Namespace) -> int:
    template = _load_json(args.template, [])
    if isinstance(template, dict):
        template = template.get("content") or template.get("fields") or []
    meta = {"templateName": args.name, "templateDescription": args.description}
    report = compose(
        _load_json(args.values, {}),
        _load_json(args.signatures, {}),
        output_path=args.output,
        template=template,
        meta=meta,
    )
    for outcome in report.outcomes:
        if outcome.status is not RenderStatus.RENDERED:
            logger.warning("Field %s: %s (%s)", outcome.field_id, outcome.status.value, outcome.detail)
    print(report.path)

    if args.preview:
        write_preview(report.path, args.preview, zoom=get_settings().preview_zoom)
    return 0


def _import_template(args: argparse.Namespace) -> int:
    fields = import_template_fields(args.source, page_index=args.page)
    payload = json.dumps([field_to_descriptor(field) for field in fields], indent=2)
    if args.output:
        Path(args.output).write_text(payload + "\n", encoding="utf-8")
    else:
        print(payload)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "render":
            return _render(args)
        return _import_template(args)
    except (PdfWriteError, PdfRenderError, PdfImportError, OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
