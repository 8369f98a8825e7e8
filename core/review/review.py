"""Review view: extracts grouped by code and a single-extract document preview."""

from __future__ import annotations

from collections.abc import Sequence

from core.codebook.models import Extract
from core.codebook.store import CodebookStore
from core.highlight.models import RenderOptions
from core.highlight.renderer import render_document


def extracts_for_code(store: CodebookStore, code: str) -> list[Extract]:
    """Rows filed under ``code``, matched exactly, in codebook order."""

    return store.extracts_for_code(code)


def review_document(
    corpus: Sequence[str],
    extract: Extract,
    options: RenderOptions | None = None,
) -> str | None:
    """Render the extract's document with only that extract highlighted.

    Returns None when the extract points outside the corpus.
    """

    if not 1 <= extract.document_id <= len(corpus):
        return None
    return render_document(
        corpus[extract.document_id - 1],
        [extract.text],
        options,
        allow_scroll=False,
    )
