"""CLI I/O helpers: corpus ingestion and atomic output writing."""

from __future__ import annotations

import importlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import pandas as pd
from docx import Document

from core.themes.bucketer import Partition
from core.utils.errors import CorpusFileError

yaml = importlib.import_module("yaml")

SUPPORTED_CORPUS_SUFFIXES = (".csv", ".txt", ".docx")


def read_corpus(path: Path, text_column: str | None = None) -> list[str]:
    """Load documents from a CSV column, text lines, or a whole DOCX file."""

    suffix = path.suffix.lower()
    if not path.exists():
        raise CorpusFileError(f"Corpus file not found: {path}", path=path)
    if suffix == ".csv":
        documents = _read_csv_corpus(path, text_column)
    elif suffix == ".txt":
        documents = _read_txt_corpus(path)
    elif suffix == ".docx":
        documents = _read_docx_corpus(path)
    else:
        raise CorpusFileError(
            f"Unsupported corpus file type '{suffix}'. "
            f"Use one of: {', '.join(SUPPORTED_CORPUS_SUFFIXES)}.",
            path=path,
        )

    if not documents:
        raise CorpusFileError(f"Corpus file contains no documents: {path}", path=path)
    return documents


def read_partition(path: Path) -> Partition:
    """Load a theme partition: a mapping of theme name to codes, or a list of lists."""

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Partition file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in partition file: {path}") from exc

    if isinstance(raw, dict):
        return {str(name): _code_list(codes, path) for name, codes in raw.items()}
    if isinstance(raw, list):
        return [_code_list(codes, path) for codes in raw]
    raise ValueError(f"Partition file must contain a mapping or a list: {path}")


def write_text_atomic(path: Path, content: str) -> None:
    _atomic_write(path, content)


def write_json_atomic(path: Path, payload: Any) -> None:
    _atomic_write(
        path, json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    )


def _read_csv_corpus(path: Path, text_column: str | None) -> list[str]:
    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise CorpusFileError(f"Invalid corpus CSV: {path}", path=path) from exc

    if frame.columns.empty:
        raise CorpusFileError(f"Corpus CSV has no columns: {path}", path=path)
    column = text_column or str(frame.columns[0])
    if column not in frame.columns:
        raise CorpusFileError(f"Text column '{column}' not found in corpus: {path}", path=path)
    return [str(value) for value in frame[column].tolist()]


def _read_txt_corpus(path: Path) -> list[str]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [line for line in lines if line.strip()]


def _read_docx_corpus(path: Path) -> list[str]:
    document = Document(str(path))
    paragraphs = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
    if not paragraphs:
        return []
    return [" ".join(paragraphs)]


def _code_list(codes: object, path: Path) -> list[str]:
    if codes is None:
        return []
    if not isinstance(codes, list):
        raise ValueError(f"Each theme in {path} must hold a list of codes")
    return [str(code) for code in codes]


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, raw_tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    tmp_path = Path(raw_tmp_path)

    try:
        tmp_path.write_text(content, encoding="utf-8")
        tmp_path.replace(path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
        raise
