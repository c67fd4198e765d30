"""
Tests for the study-aid command line entry point.
"""

import json

from app.modules.study import cli
from app.modules.study.errors import GenerationFailed
from app.modules.study.generator import StreamUpdate
from conftest import PDF_BYTES, make_flashcards


def test_generate_prints_items(tmp_path, monkeypatch, capsys):
    pdf = tmp_path / "notes.pdf"
    pdf.write_bytes(PDF_BYTES)

    async def _generate(kind, document):
        cards = make_flashcards()
        yield StreamUpdate(kind=kind, items=cards[:4])
        yield StreamUpdate(kind=kind, items=cards, complete=True)

    monkeypatch.setattr(cli, "generate", _generate)

    assert cli.main(["generate", "-k", "flashcards", "-f", str(pdf)]) == 0
    out, err = capsys.readouterr()
    assert len(json.loads(out)) == 8
    assert "[flashcards] 4/8 (50%)" in err


def test_generate_rejects_non_pdf(tmp_path, capsys):
    txt = tmp_path / "notes.txt"
    txt.write_text("hello")

    assert cli.main(["generate", "-f", str(txt)]) == 2
    assert "Rejected" in capsys.readouterr().err


def test_generate_failure_exit_code(tmp_path, monkeypatch, capsys):
    pdf = tmp_path / "notes.pdf"
    pdf.write_bytes(PDF_BYTES)

    async def _generate(kind, document):
        raise GenerationFailed("Model stream failed: quota", kind=kind.value)
        yield

    monkeypatch.setattr(cli, "generate", _generate)

    assert cli.main(["generate", "-f", str(pdf)]) == 1
    assert "quota" in capsys.readouterr().err


def test_title(tmp_path, monkeypatch, capsys):
    async def _title(filename):
        return filename.upper()

    monkeypatch.setattr(cli, "generate_title", _title)

    assert cli.main(["title", "-f", str(tmp_path / "cells.pdf")]) == 0
    assert capsys.readouterr().out.strip() == "CELLS.PDF"
