from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from apps.cli.main import app
from core.codebook.io import read_codebook, write_codebook_atomic
from core.codebook.models import Extract

runner = CliRunner()

_LATEST = '<span id="lastString" style="background-color: powderblue">'


def _write_corpus(path: Path) -> Path:
    path.write_text(
        "The cat sat on the mat.\nA dog (barked) loudly.\nBirds sing at dawn.\n",
        encoding="utf-8",
    )
    return path


def _write_codebook(path: Path, rows: list[Extract]) -> Path:
    write_codebook_atomic(path, rows, [])
    return path


def _extract(text: str, document_id: int, code: str, timestamp: str = "t") -> Extract:
    return Extract(code=code, text=text, document_id=document_id, timestamp=timestamp)


def test_cli_render_prints_highlighted_document(tmp_path: Path) -> None:
    corpus = _write_corpus(tmp_path / "corpus.txt")
    codebook = _write_codebook(tmp_path / "codebook.csv", [_extract("(barked)", 2, "sound")])

    result = runner.invoke(
        app,
        ["render", "--corpus", str(corpus), "--codebook", str(codebook), "--document", "2"],
    )

    assert result.exit_code == 0
    assert f"A dog {_LATEST}(barked)</span> loudly." in result.output


def test_cli_render_clamps_document_and_writes_file(tmp_path: Path) -> None:
    corpus = _write_corpus(tmp_path / "corpus.txt")
    out = tmp_path / "out" / "doc.html"

    result = runner.invoke(
        app, ["render", "--corpus", str(corpus), "--document", "40", "--out", str(out)]
    )

    assert result.exit_code == 0
    assert "Birds sing at dawn." in out.read_text(encoding="utf-8")


def test_cli_add_extract_creates_codebook(tmp_path: Path) -> None:
    corpus = _write_corpus(tmp_path / "corpus.txt")
    codebook = tmp_path / "codebook.csv"

    result = runner.invoke(
        app,
        [
            "add-extract",
            "--corpus",
            str(corpus),
            "--codebook",
            str(codebook),
            "--document",
            "1",
            "--text",
            "sat on",
            "--code",
            "posture",
        ],
    )

    assert result.exit_code == 0
    rows, _ = read_codebook(codebook)
    assert [(row.text, row.document_id, row.code) for row in rows] == [("sat on", 1, "posture")]


def test_cli_add_extract_rejects_text_missing_from_document(tmp_path: Path) -> None:
    corpus = _write_corpus(tmp_path / "corpus.txt")
    codebook = tmp_path / "codebook.csv"

    result = runner.invoke(
        app,
        [
            "add-extract",
            "--corpus",
            str(corpus),
            "--codebook",
            str(codebook),
            "--document",
            "1",
            "--text",
            "unicorn",
        ],
    )

    assert result.exit_code == 1
    assert "ERROR: extract text not found in document 1." in result.output
    assert not codebook.exists()


def test_cli_add_extract_rejects_document_outside_corpus(tmp_path: Path) -> None:
    corpus = _write_corpus(tmp_path / "corpus.txt")

    result = runner.invoke(
        app,
        [
            "add-extract",
            "--corpus",
            str(corpus),
            "--codebook",
            str(tmp_path / "codebook.csv"),
            "--document",
            "9",
            "--text",
            "cat",
        ],
    )

    assert result.exit_code == 1
    assert "--document must be between 1 and 3" in result.output


def test_cli_counter_prints_json(tmp_path: Path) -> None:
    codebook = _write_codebook(
        tmp_path / "codebook.csv",
        [_extract("cat", 1, "A"), _extract("mat", 1, "A"), _extract("dawn", 3, "B")],
    )

    result = runner.invoke(app, ["counter", "--codebook", str(codebook)])

    assert result.exit_code == 0
    assert json.loads(result.output) == [
        {"code": "A", "instances": 2},
        {"code": "B", "instances": 1},
    ]


def test_cli_rename_code_rewrites_codebook(tmp_path: Path) -> None:
    codebook = _write_codebook(
        tmp_path / "codebook.csv",
        [_extract("cat", 1, "A"), _extract("mat", 1, "A"), _extract("dawn", 3, "B")],
    )

    result = runner.invoke(
        app, ["rename-code", "--codebook", str(codebook), "--old", "A", "--new", "pets"]
    )

    assert result.exit_code == 0
    assert "Renamed 2 extract(s)" in result.output
    rows, _ = read_codebook(codebook)
    assert [row.code for row in rows] == ["pets", "pets", "B"]


def test_cli_delete_extract_uses_one_based_rows(tmp_path: Path) -> None:
    codebook = _write_codebook(
        tmp_path / "codebook.csv", [_extract("cat", 1, "A"), _extract("mat", 1, "B")]
    )

    result = runner.invoke(app, ["delete-extract", "--codebook", str(codebook), "--row", "1"])

    assert result.exit_code == 0
    rows, _ = read_codebook(codebook)
    assert [row.text for row in rows] == ["mat"]


def test_cli_delete_extract_out_of_range_fails(tmp_path: Path) -> None:
    codebook = _write_codebook(tmp_path / "codebook.csv", [_extract("cat", 1, "A")])

    result = runner.invoke(app, ["delete-extract", "--codebook", str(codebook), "--row", "5"])

    assert result.exit_code == 1
    assert "ERROR: --row must be between 1 and 1." in result.output


def test_cli_column_commands_round_trip(tmp_path: Path) -> None:
    codebook = _write_codebook(tmp_path / "codebook.csv", [_extract("cat", 1, "A")])

    added = runner.invoke(app, ["add-column", "--codebook", str(codebook)])
    edited = runner.invoke(
        app,
        [
            "edit-cell",
            "--codebook",
            str(codebook),
            "--row",
            "1",
            "--column",
            "Notes",
            "--value",
            "revisit",
        ],
    )

    assert added.exit_code == 0
    assert "Added column 'Notes'." in added.output
    assert edited.exit_code == 0
    rows, extra_columns = read_codebook(codebook)
    assert extra_columns == ["Notes"]
    assert rows[0].extra == {"Notes": "revisit"}

    removed = runner.invoke(app, ["remove-column", "--codebook", str(codebook), "--name", "Notes"])
    kept = runner.invoke(app, ["remove-column", "--codebook", str(codebook), "--name", "Code"])

    assert removed.exit_code == 0
    assert kept.exit_code == 0
    assert "not removed" in kept.output
    assert read_codebook(codebook)[1] == []


def test_cli_export_codebook_sorts_by_timestamp(tmp_path: Path) -> None:
    codebook = _write_codebook(
        tmp_path / "codebook.csv",
        [
            _extract("cat", 1, "A", "2024-09-15 10:00:00"),
            _extract("dawn", 3, "B", "2024-09-15 12:00:00"),
            _extract("mat", 1, "A", "2024-09-15 11:00:00"),
        ],
    )
    out = tmp_path / "export.csv"

    result = runner.invoke(app, ["export-codebook", "--codebook", str(codebook), "--out", str(out)])

    assert result.exit_code == 0
    frame = pd.read_csv(out, dtype=str, keep_default_na=False)
    assert frame["Extract"].tolist() == ["dawn", "mat", "cat"]


def test_cli_export_themes_from_counter(tmp_path: Path) -> None:
    codebook = _write_codebook(
        tmp_path / "codebook.csv", [_extract("cat", 1, "pets"), _extract("dawn", 3, "time")]
    )
    out = tmp_path / "themes.csv"

    result = runner.invoke(app, ["export-themes", "--codebook", str(codebook), "--out", str(out)])

    assert result.exit_code == 0
    frame = pd.read_csv(out, dtype=str, keep_default_na=False)
    assert list(frame.columns) == ["Theme 1", "Theme 2"]
    assert frame["Theme 1"].tolist() == ["pets", "time"]
    assert frame["Theme 2"].tolist() == ["", ""]


def test_cli_export_themes_with_partition_file(tmp_path: Path) -> None:
    codebook = _write_codebook(tmp_path / "codebook.csv", [_extract("cat", 1, "pets")])
    partition = tmp_path / "partition.yaml"
    partition.write_text(
        "Living:\n  - pets\n  - plants\n  - people\nTime:\n  - dawn\nEmpty: []\n",
        encoding="utf-8",
    )
    out = tmp_path / "themes.csv"

    result = runner.invoke(
        app,
        [
            "export-themes",
            "--codebook",
            str(codebook),
            "--out",
            str(out),
            "--partition",
            str(partition),
        ],
    )

    assert result.exit_code == 0
    frame = pd.read_csv(out, dtype=str, keep_default_na=False)
    assert frame.shape == (3, 3)
    assert frame["Time"].tolist() == ["dawn", "", ""]


def test_cli_review_shows_extract_in_context(tmp_path: Path) -> None:
    corpus = _write_corpus(tmp_path / "corpus.txt")
    codebook = _write_codebook(
        tmp_path / "codebook.csv", [_extract("cat", 1, "pets"), _extract("dog", 2, "pets")]
    )

    result = runner.invoke(
        app,
        [
            "review",
            "--corpus",
            str(corpus),
            "--codebook",
            str(codebook),
            "--code",
            "pets",
            "--position",
            "2",
        ],
    )

    assert result.exit_code == 0
    assert f"A {_LATEST}dog</span> (barked) loudly." in result.output


def test_cli_reports_invalid_codebook(tmp_path: Path) -> None:
    codebook = tmp_path / "codebook.csv"
    codebook.write_text("Code,Extract\nA,cat\n", encoding="utf-8")

    result = runner.invoke(app, ["counter", "--codebook", str(codebook)])

    assert result.exit_code == 1
    assert "ERROR: Codebook file is missing required columns" in result.output


def test_cli_reports_unsupported_corpus(tmp_path: Path) -> None:
    corpus = tmp_path / "corpus.pdf"
    corpus.write_bytes(b"%PDF-1.4")

    result = runner.invoke(app, ["render", "--corpus", str(corpus)])

    assert result.exit_code == 1
    assert "Unsupported corpus file type" in result.output
