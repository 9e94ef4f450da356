from __future__ import annotations

import json
from pathlib import Path

import pytest
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from formpdf.cli import main
from formpdf.pdf.writer import validate


def write_json(path: Path, payload) -> str:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_render_command(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    template = write_json(tmp_path / "template.json", {"content": [{"id": 1, "type": "text", "label": "Name"}]})
    values = write_json(tmp_path / "values.json", {"1": "Jane Doe"})
    output = tmp_path / "out.pdf"
    preview = tmp_path / "out.png"

    code = main(
        ["render", "--template", template, "--values", values, "--name", "Intake", "-o", str(output), "--preview", str(preview)]
    )
    assert code == 0
    assert validate(output)
    assert preview.exists()
    assert str(output) in capsys.readouterr().out


def test_render_command_reports_write_failure(tmp_path: Path) -> None:
    template = write_json(tmp_path / "template.json", [])
    blocker = tmp_path / "blocker"
    blocker.write_text("file")
    assert main(["render", "--template", template, "-o", str(blocker / "out.pdf")]) == 1


def test_import_template_command(tmp_path: Path) -> None:
    source = tmp_path / "fillable.pdf"
    pdf = canvas.Canvas(str(source), pagesize=A4)
    pdf.acroForm.textfield(name="email", x=80, y=640, width=240, height=40)
    pdf.showPage()
    pdf.save()

    target = tmp_path / "template.json"
    assert main(["import-template", str(source), "-o", str(target)]) == 0
    descriptors = json.loads(target.read_text(encoding="utf-8"))
    assert [descriptor["id"] for descriptor in descriptors] == ["email"]
    assert descriptors[0]["type"] == "text"
