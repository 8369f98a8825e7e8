"""Ordered theme buckets holding code labels, with rectangular export."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from core.codebook.io import write_frame_atomic
from core.utils.events_log import log_event

logger = logging.getLogger("quokka.themes")

Partition = Sequence[Sequence[str]] | Mapping[str, Sequence[str]]


@dataclass
class ThemeBucket:
    """One named theme and the ordered codes sorted into it."""

    name: str
    codes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ThemeTable:
    """Rectangular export: one column per theme, padded with empty cells."""

    header: list[str]
    rows: list[list[str]]


class ThemeBucketer:
    """Partition codes into an ordered, growable list of theme buckets.

    The bucketer stores whatever partition it is given; keeping each code in
    a single bucket is the caller's contract.
    """

    def __init__(self, default_bucket_count: int = 2) -> None:
        self._default_bucket_count = max(default_bucket_count, 2)
        self._buckets: list[ThemeBucket] = []

    @property
    def initialized(self) -> bool:
        return bool(self._buckets)

    @property
    def buckets(self) -> list[ThemeBucket]:
        return [ThemeBucket(name=bucket.name, codes=list(bucket.codes)) for bucket in self._buckets]

    def partition(self) -> list[list[str]]:
        return [list(bucket.codes) for bucket in self._buckets]

    def ensure_initialized(self, codes: Sequence[str]) -> bool:
        """Seed bucket 1 with ``codes`` the first time; later calls do nothing."""

        if self._buckets:
            return False
        self._buckets = [ThemeBucket(name=_default_name(1), codes=list(codes))]
        for position in range(2, self._default_bucket_count + 1):
            self._buckets.append(ThemeBucket(name=_default_name(position)))
        log_event(logger, logging.DEBUG, "themes_initialized", codes=len(codes))
        return True

    def set_partition(self, partition: Partition) -> None:
        """Replace every bucket's contents with the caller's live arrangement.

        A sequence keeps existing bucket names by position; a mapping names the
        buckets with its keys. Buckets beyond the given partition are dropped.
        """

        if isinstance(partition, Mapping):
            self._buckets = [
                ThemeBucket(name=str(name), codes=list(codes)) for name, codes in partition.items()
            ]
            return

        buckets: list[ThemeBucket] = []
        for position, codes in enumerate(partition, start=1):
            name = (
                self._buckets[position - 1].name
                if position <= len(self._buckets)
                else _default_name(position)
            )
            buckets.append(ThemeBucket(name=name, codes=list(codes)))
        self._buckets = buckets

    def add_bucket(self, current_partition: Partition | None = None) -> ThemeBucket:
        """Commit the live arrangement, then append one empty bucket."""

        if current_partition is not None:
            self.set_partition(current_partition)
        taken = {existing.name for existing in self._buckets}
        position = len(self._buckets) + 1
        while _default_name(position) in taken:
            position += 1
        bucket = ThemeBucket(name=_default_name(position))
        self._buckets.append(bucket)
        return bucket

    def rename_bucket(self, index: int, name: str) -> bool:
        if not 0 <= index < len(self._buckets) or not name.strip():
            return False
        self._buckets[index].name = name.strip()
        return True

    def export_table(self) -> ThemeTable:
        header = [bucket.name for bucket in self._buckets]
        depth = max((len(bucket.codes) for bucket in self._buckets), default=0)
        columns = [bucket.codes + [""] * (depth - len(bucket.codes)) for bucket in self._buckets]
        rows = [list(row) for row in zip(*columns)] if columns else []
        return ThemeTable(header=header, rows=rows)


def write_themes_atomic(path: Path, table: ThemeTable) -> None:
    write_frame_atomic(path, pd.DataFrame(table.rows, columns=table.header))
    log_event(
        logger,
        logging.INFO,
        "themes_exported",
        path=str(path),
        themes=len(table.header),
        rows=len(table.rows),
    )


def _default_name(position: int) -> str:
    return f"Theme {position}"
