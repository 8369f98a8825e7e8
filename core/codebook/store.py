"""In-memory codebook with a derived per-code counter and durable snapshots."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from core.codebook.io import write_codebook_atomic
from core.codebook.models import (
    CORE_COLUMNS,
    DOCUMENT_ID_COLUMN,
    TIMESTAMP_COLUMN,
    CounterEntry,
    Extract,
)
from core.session.events import ChangeKind, CodebookChange, Signal
from core.utils.events_log import log_event

logger = logging.getLogger("quokka.codebook")

Clock = Callable[[], datetime]


def _default_timestamp(clock: Clock) -> str:
    return clock().isoformat(sep=" ", timespec="microseconds")


class CodebookStore:
    """Own the ordered codebook rows and keep the counter consistent with them.

    Every mutation follows the same commit path: build the new table, write
    the snapshot (when a snapshot path is configured), swap the new table in,
    then emit ``changed``. The counter is the first subscriber of ``changed``,
    so later subscribers always read a fresh count. A failed snapshot leaves
    both the file and the in-memory table untouched.
    """

    def __init__(
        self,
        snapshot_path: Path | None = None,
        *,
        default_column_name: str = "Notes",
        clock: Clock = datetime.now,
    ) -> None:
        self._snapshot_path = snapshot_path
        self._default_column_name = default_column_name
        self._clock = clock
        self._rows: list[Extract] = []
        self._extra_columns: list[str] = []
        self._counter: list[CounterEntry] = []
        self.changed: Signal[CodebookChange] = Signal()
        self.changed.connect(self._recount)

    @property
    def rows(self) -> list[Extract]:
        return list(self._rows)

    @property
    def columns(self) -> list[str]:
        return [*CORE_COLUMNS, *self._extra_columns]

    @property
    def extra_columns(self) -> list[str]:
        return list(self._extra_columns)

    @property
    def counter(self) -> list[CounterEntry]:
        return list(self._counter)

    def __len__(self) -> int:
        return len(self._rows)

    def replace_all(self, rows: list[Extract], extra_columns: list[str] | None = None) -> None:
        """Swap in a whole codebook, e.g. one loaded from file."""

        columns = list(extra_columns or [])
        normalized = [
            row.model_copy(update={"extra": {column: row.extra.get(column, "") for column in columns}})
            for row in rows
        ]
        self._commit(normalized, columns, CodebookChange(kind="load"))

    def add_extract(self, text: str, document_id: int, code: str | None = None) -> Extract | None:
        """Append one extract; empty text or a non-positive document id is a no-op."""

        if not text or document_id < 1:
            log_event(logger, logging.DEBUG, "extract_add_skipped", document_id=document_id)
            return None

        extract = Extract(
            theme="",
            code=code or "",
            text=text,
            document_id=document_id,
            timestamp=_default_timestamp(self._clock),
            extra={column: "" for column in self._extra_columns},
        )
        rows = [*self._rows, extract]
        self._commit(rows, self._extra_columns, CodebookChange(kind="add", row_index=len(rows) - 1))
        log_event(
            logger,
            logging.INFO,
            "extract_added",
            document_id=document_id,
            code=extract.code,
            row_index=len(rows) - 1,
        )
        return extract

    def delete_extract(self, row_index: int | None) -> Extract | None:
        if row_index is None or not 0 <= row_index < len(self._rows):
            log_event(logger, logging.DEBUG, "extract_delete_skipped", row_index=row_index)
            return None

        removed = self._rows[row_index]
        rows = self._rows[:row_index] + self._rows[row_index + 1 :]
        self._commit(rows, self._extra_columns, CodebookChange(kind="delete", row_index=row_index))
        log_event(logger, logging.INFO, "extract_deleted", row_index=row_index, code=removed.code)
        return removed

    def edit_cell(self, row_index: int, column: str, value: str) -> bool:
        """Replace one cell; unknown rows/columns or invalid values are ignored."""

        if not 0 <= row_index < len(self._rows) or column not in self.columns:
            log_event(
                logger, logging.DEBUG, "cell_edit_skipped", row_index=row_index, column=column
            )
            return False

        try:
            updated = self._rows[row_index].with_cell(column, value)
        except ValidationError:
            log_event(
                logger, logging.DEBUG, "cell_edit_rejected", row_index=row_index, column=column
            )
            return False

        if column == DOCUMENT_ID_COLUMN and updated.document_id < 1:
            log_event(
                logger, logging.DEBUG, "cell_edit_rejected", row_index=row_index, column=column
            )
            return False

        rows = list(self._rows)
        rows[row_index] = updated
        self._commit(
            rows,
            self._extra_columns,
            CodebookChange(kind="edit", row_index=row_index, column=column),
        )
        return True

    def rename_code(self, old_value: str, new_value: str) -> int:
        """Replace the code of every row whose code equals ``old_value`` exactly."""

        if old_value == new_value:
            return 0

        renamed = 0
        rows: list[Extract] = []
        for row in self._rows:
            if row.code == old_value:
                rows.append(row.model_copy(update={"code": new_value}))
                renamed += 1
            else:
                rows.append(row)

        if not renamed:
            log_event(logger, logging.DEBUG, "code_rename_skipped", old=old_value, new=new_value)
            return 0

        self._commit(rows, self._extra_columns, CodebookChange(kind="rename"))
        log_event(
            logger, logging.INFO, "code_renamed", old=old_value, new=new_value, rows=renamed
        )
        return renamed

    def add_column(self, name: str = "", default: str = "") -> str | None:
        """Add a column to every row; a blank name falls back to the default name."""

        column = name.strip() or self._default_column_name
        if column in self.columns:
            log_event(logger, logging.DEBUG, "column_add_skipped", column=column)
            return None

        rows = [
            row.model_copy(update={"extra": {**row.extra, column: default}}) for row in self._rows
        ]
        columns = [*self._extra_columns, column]
        self._commit(rows, columns, self._change("add_column", column))
        log_event(logger, logging.INFO, "column_added", column=column)
        return column

    def remove_column(self, name: str) -> bool:
        if name in CORE_COLUMNS:
            log_event(logger, logging.WARNING, "column_remove_ignored", column=name)
            return False
        if name not in self._extra_columns:
            log_event(logger, logging.DEBUG, "column_remove_skipped", column=name)
            return False

        rows = [
            row.model_copy(
                update={"extra": {key: value for key, value in row.extra.items() if key != name}}
            )
            for row in self._rows
        ]
        columns = [column for column in self._extra_columns if column != name]
        self._commit(rows, columns, self._change("remove_column", name))
        log_event(logger, logging.INFO, "column_removed", column=name)
        return True

    def recompute_counter(self) -> list[CounterEntry]:
        """Recount rows per code, ordered by code."""

        counts = Counter(row.code for row in self._rows)
        self._counter = [
            CounterEntry(code=code, instances=counts[code]) for code in sorted(counts)
        ]
        return self.counter

    def extracts_for_document(self, document_id: int) -> list[str]:
        """Extract texts saved against ``document_id``, in insertion order."""

        return [row.text for row in self._rows if row.document_id == document_id]

    def extracts_for_code(self, code: str) -> list[Extract]:
        return [row for row in self._rows if row.code == code]

    def sorted_by_timestamp(self, *, descending: bool = True) -> list[Extract]:
        return sorted(
            self._rows, key=lambda row: row.get_cell(TIMESTAMP_COLUMN), reverse=descending
        )

    def save_snapshot(self) -> None:
        if self._snapshot_path is None:
            return
        write_codebook_atomic(self._snapshot_path, self._rows, self._extra_columns)

    def _commit(self, rows: list[Extract], extra_columns: list[str], change: CodebookChange) -> None:
        if self._snapshot_path is not None:
            write_codebook_atomic(self._snapshot_path, rows, extra_columns)
            log_event(
                logger,
                logging.DEBUG,
                "snapshot_written",
                path=str(self._snapshot_path),
                rows=len(rows),
            )
        self._rows = rows
        self._extra_columns = list(extra_columns)
        self.changed.emit(change)

    def _recount(self, _change: CodebookChange) -> None:
        self.recompute_counter()

    @staticmethod
    def _change(kind: ChangeKind, column: str) -> CodebookChange:
        return CodebookChange(kind=kind, column=column)
