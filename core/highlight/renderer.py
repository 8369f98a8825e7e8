"""Render highlight spans into display markup."""

from __future__ import annotations

import html
from collections.abc import Sequence

from core.highlight.models import HighlightSpan, RenderOptions
from core.highlight.span_merger import UnlocatedHook, merge, normalize_text


def render(
    text: str,
    spans: Sequence[HighlightSpan],
    options: RenderOptions | None = None,
    *,
    allow_scroll: bool = True,
) -> str:
    """Wrap ``spans`` of ``text`` in highlight markup.

    Spans are inserted from the highest start offset to the lowest, so the
    offsets of spans still waiting to be wrapped never move.
    """

    opts = options or RenderOptions()
    normalized = normalize_text(text)

    pieces: list[str] = []
    cursor = len(normalized)
    has_latest = False
    for span in sorted(spans, key=lambda item: item.start, reverse=True):
        if span.start < 0 or span.end >= cursor or span.start > span.end:
            raise ValueError(f"Span out of bounds or overlapping: {span}")
        pieces.append(html.escape(normalized[span.end + 1 : cursor], quote=False))
        pieces.append(_wrap(normalized[span.start : span.end + 1], span.is_latest, opts))
        has_latest = has_latest or span.is_latest
        cursor = span.start
    pieces.append(html.escape(normalized[:cursor], quote=False))
    body = "".join(reversed(pieces))

    markup = (
        f'<div id="{opts.container_id}">'
        f'<p id="{opts.paragraph_id}" style="font-size: {opts.font_size_px}px">{body}</p>'
    )
    if allow_scroll and has_latest and len(normalized) >= opts.scroll_threshold:
        markup += f"<script>{opts.latest_id}.scrollIntoView();</script>"
    return markup + "</div>"


def render_document(
    text: str,
    extracts: Sequence[str],
    options: RenderOptions | None = None,
    *,
    on_unlocated: UnlocatedHook | None = None,
    allow_scroll: bool = True,
) -> str:
    """Normalize ``text``, merge ``extracts`` and render the result."""

    normalized = normalize_text(text)
    spans = merge(normalized, extracts, on_unlocated)
    return render(normalized, spans, options, allow_scroll=allow_scroll)


def _wrap(segment: str, is_latest: bool, options: RenderOptions) -> str:
    style = f'style="background-color: {options.highlight_color}"'
    escaped = html.escape(segment, quote=False)
    if is_latest:
        return f'<span id="{options.latest_id}" {style}>{escaped}</span>'
    return f"<span {style}>{escaped}</span>"
