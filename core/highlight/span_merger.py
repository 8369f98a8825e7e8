"""Locate saved extracts in document text and merge them into highlight spans."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence

from core.highlight.models import HighlightSpan, LocatedExtract
from core.utils.events_log import log_event

logger = logging.getLogger("quokka.highlight")

UnlocatedHook = Callable[[str], None]

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Collapse line breaks and whitespace runs to single spaces.

    All span offsets are computed against the normalized string.
    """

    return _WHITESPACE_RUN.sub(" ", text)


def locate_extracts(
    text: str,
    extracts: Sequence[str],
    on_unlocated: UnlocatedHook | None = None,
) -> list[LocatedExtract]:
    """Find the first literal occurrence of each extract, in input order."""

    located: list[LocatedExtract] = []
    for order, extract in enumerate(extracts):
        start = text.find(extract) if extract else -1
        if start < 0:
            log_event(
                logger,
                logging.DEBUG,
                "extract_unlocated",
                order=order,
                extract_length=len(extract),
            )
            if on_unlocated is not None:
                on_unlocated(extract)
            continue
        located.append(
            LocatedExtract(order=order, extract=extract, start=start, end=start + len(extract) - 1)
        )
    return located


def merge_intervals(intervals: Iterable[tuple[int, int]]) -> list[tuple[int, int]]:
    """Union closed intervals into a sorted, disjoint list."""

    ordered = sorted(intervals)
    if len(ordered) <= 1:
        return ordered

    merged = [ordered[0]]
    for start, end in ordered[1:]:
        last_start, last_end = merged[-1]
        if last_start <= start <= last_end:
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def merge(
    text: str,
    raw_extracts: Sequence[str],
    on_unlocated: UnlocatedHook | None = None,
) -> list[HighlightSpan]:
    """Build disjoint highlight spans for ``raw_extracts`` inside ``text``.

    ``text`` must already be normalized. ``raw_extracts`` is in codebook
    insertion order; the span holding the last located extract is flagged as
    the latest one.
    """

    located = locate_extracts(text, raw_extracts, on_unlocated)
    if not located:
        return []

    latest_start = located[-1].start
    intervals = merge_intervals((item.start, item.end) for item in located)
    return [
        HighlightSpan(start=start, end=end, is_latest=start <= latest_start <= end)
        for start, end in intervals
    ]
