"""Codebook CSV reading and atomic snapshot writing."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pandas as pd

from core.codebook.models import CORE_COLUMNS, DOCUMENT_ID_COLUMN, Extract
from core.utils.errors import CodebookFileError, SnapshotError


def read_codebook(path: Path) -> tuple[list[Extract], list[str]]:
    """Read a codebook CSV and return its rows plus the extra column names.

    Cells are read as strings; empty cells stay empty instead of becoming NaN.
    """

    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    except FileNotFoundError as exc:
        raise CodebookFileError(f"Codebook file not found: {path}", path=path) from exc
    except pd.errors.EmptyDataError as exc:
        raise CodebookFileError(f"Codebook file is empty: {path}", path=path) from exc
    except pd.errors.ParserError as exc:
        raise CodebookFileError(f"Invalid codebook CSV: {path}", path=path) from exc

    columns = [str(column) for column in frame.columns]
    missing = [column for column in CORE_COLUMNS if column not in columns]
    if missing:
        raise CodebookFileError(
            f"Codebook file is missing required columns: {', '.join(missing)}",
            path=path,
            missing_columns=missing,
        )

    extra_columns = [column for column in columns if column not in CORE_COLUMNS]
    rows: list[Extract] = []
    for position, record in enumerate(frame.to_dict(orient="records"), start=1):
        try:
            rows.append(Extract.from_row(record, extra_columns))
        except ValueError as exc:
            raise CodebookFileError(
                f"Invalid {DOCUMENT_ID_COLUMN} in codebook row {position}: {path}",
                path=path,
            ) from exc
    return rows, extra_columns


def codebook_frame(rows: list[Extract], extra_columns: list[str]) -> pd.DataFrame:
    columns = [*CORE_COLUMNS, *extra_columns]
    return pd.DataFrame([row.to_row(columns) for row in rows], columns=columns)


def write_codebook_atomic(path: Path, rows: list[Extract], extra_columns: list[str]) -> None:
    """Write the whole codebook to ``path`` via temporary file + replace."""

    write_frame_atomic(path, codebook_frame(rows, extra_columns))


def write_frame_atomic(path: Path, frame: pd.DataFrame) -> None:
    """Write ``frame`` as CSV; the previous file survives any failure."""

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, raw_tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f"{path.name}.",
            suffix=".tmp",
        )
        os.close(fd)
    except OSError as exc:
        raise SnapshotError(f"Unable to prepare snapshot for {path}", path=path) from exc

    tmp_path = Path(raw_tmp_path)
    try:
        frame.to_csv(tmp_path, index=False, encoding="utf-8")
        tmp_path.replace(path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise SnapshotError(f"Unable to write snapshot {path}", path=path) from exc
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise
