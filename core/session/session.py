"""One analyst's coding session: corpus, codebook, navigation and themes."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from core.codebook.io import read_codebook, write_codebook_atomic
from core.codebook.models import CODE_COLUMN, DOCUMENT_ID_COLUMN, CounterEntry, Extract
from core.codebook.store import Clock, CodebookStore
from core.config.settings import QuokkaSettings
from core.highlight.models import RenderOptions
from core.highlight.renderer import render_document
from core.navigation.navigator import DocumentNavigator
from core.review.review import review_document
from core.session.events import CodebookChange, Signal
from core.themes.bucketer import Partition, ThemeBucketer, ThemeTable, write_themes_atomic
from core.utils.events_log import log_event

logger = logging.getLogger("quokka.session")


@dataclass(frozen=True)
class UnlocatedExtract:
    """An extract that could not be found verbatim in its document."""

    document_id: int
    text: str


class CodingSession:
    """Owns all mutable session state and wires it together through signals.

    Commands whose preconditions are missing (no corpus, no selection, empty
    text) return quietly without changing anything.
    """

    def __init__(
        self,
        settings: QuokkaSettings | None = None,
        *,
        persist: bool = True,
        clock: Clock = datetime.now,
    ) -> None:
        self.settings = settings or QuokkaSettings()
        self.store = CodebookStore(
            self.settings.snapshot_path if persist else None,
            default_column_name=self.settings.default_column_name,
            clock=clock,
        )
        self.bucketer = ThemeBucketer(self.settings.default_bucket_count)
        self.render_options = RenderOptions(
            highlight_color=self.settings.highlight_color,
            scroll_threshold=self.settings.scroll_threshold,
            font_size_px=self.settings.font_size_px,
        )
        self.navigator: DocumentNavigator | None = None
        self.current_markup: str | None = None
        self.extract_unlocated: Signal[UnlocatedExtract] = Signal()
        self.rendered: Signal[str] = Signal()

        self._corpus: tuple[str, ...] = ()
        self._selected_code: str | None = None
        self._selected_row: int | None = None

        self.store.changed.connect(self._on_codebook_changed)

    @property
    def corpus(self) -> tuple[str, ...]:
        return self._corpus

    @property
    def has_corpus(self) -> bool:
        return bool(self._corpus)

    @property
    def current_index(self) -> int | None:
        return self.navigator.index if self.navigator is not None else None

    @property
    def counter(self) -> list[CounterEntry]:
        return self.store.counter

    @property
    def selected_code(self) -> str | None:
        return self._selected_code

    @property
    def selected_row(self) -> int | None:
        return self._selected_row

    # Loading

    def load_corpus(self, documents: Sequence[str]) -> None:
        """Replace the corpus wholesale and return to document 1."""

        corpus = tuple(str(document) for document in documents)
        if not corpus:
            raise ValueError("Corpus must contain at least one document")

        self._corpus = corpus
        if self.navigator is None:
            self.navigator = DocumentNavigator(len(corpus))
            self.navigator.changed.connect(self._on_document_changed)
            self._warn_out_of_range()
            self.refresh()
        else:
            self._warn_out_of_range()
            self.navigator.reset(len(corpus))
        log_event(logger, logging.INFO, "corpus_loaded", documents=len(corpus))

    def load_codebook(self, path: Path) -> None:
        rows, extra_columns = read_codebook(path)
        # Exports are newest-first; rows are held in insertion order.
        rows = sorted(rows, key=lambda row: row.timestamp)
        self.store.replace_all(rows, extra_columns)
        self._warn_out_of_range()
        log_event(logger, logging.INFO, "codebook_loaded", path=str(path), rows=len(rows))

    # Selection

    def select_counter_row(self, row_index: int | None) -> str | None:
        """Select a counter row; its code is attached to extracts added next."""

        counter = self.store.counter
        if row_index is None or not 0 <= row_index < len(counter):
            self._selected_code = None
        else:
            self._selected_code = counter[row_index].code
        return self._selected_code

    def select_codebook_row(self, row_index: int | None) -> int | None:
        if row_index is None or not 0 <= row_index < len(self.store):
            self._selected_row = None
        else:
            self._selected_row = row_index
        return self._selected_row

    # Codebook commands

    def add_selected_text(self, text: str) -> Extract | None:
        if self.navigator is None or not text:
            log_event(logger, logging.DEBUG, "add_skipped", has_corpus=self.has_corpus)
            return None
        return self.store.add_extract(text, self.navigator.index, self._selected_code)

    def delete_selected_extract(self) -> Extract | None:
        if self._selected_row is None:
            log_event(logger, logging.DEBUG, "delete_skipped")
            return None
        return self.store.delete_extract(self._selected_row)

    def edit_codebook_cell(self, row_index: int, column: str, value: str) -> bool:
        if column == DOCUMENT_ID_COLUMN and self._corpus:
            try:
                document_id = int(value.strip())
            except ValueError:
                return False
            if document_id > len(self._corpus):
                log_event(
                    logger,
                    logging.DEBUG,
                    "cell_edit_rejected",
                    row_index=row_index,
                    column=column,
                )
                return False
        return self.store.edit_cell(row_index, column, value)

    def edit_counter_cell(self, row_index: int, column: str, value: str) -> int:
        """Rename one code everywhere by editing its cell in the counter view.

        Only the code column is editable; the instance count is derived.
        """

        counter = self.store.counter
        if column != CODE_COLUMN or not 0 <= row_index < len(counter):
            log_event(
                logger, logging.DEBUG, "counter_edit_skipped", row_index=row_index, column=column
            )
            return 0
        old_value = counter[row_index].code
        keep_selected = self._selected_code == old_value
        renamed = self.store.rename_code(old_value, value)
        if renamed and keep_selected:
            self._selected_code = value
        return renamed

    def add_column(self, name: str = "", default: str = "") -> str | None:
        return self.store.add_column(name, default)

    def remove_column(self, name: str) -> bool:
        return self.store.remove_column(name)

    def export_codebook(self, path: Path) -> None:
        """Write the codebook sorted by timestamp, newest first."""

        write_codebook_atomic(path, self.store.sorted_by_timestamp(), self.store.extra_columns)
        log_event(logger, logging.INFO, "codebook_exported", path=str(path), rows=len(self.store))

    # Navigation

    def next_document(self) -> bool:
        return self.navigator.next() if self.navigator is not None else False

    def prev_document(self) -> bool:
        return self.navigator.prev() if self.navigator is not None else False

    def jump_to_document(self, target: int) -> bool:
        return self.navigator.jump_to(target) if self.navigator is not None else False

    # Rendering

    def refresh(self) -> str | None:
        """Re-render the current document with its saved extracts highlighted."""

        if self.navigator is None:
            return None

        document_id = self.navigator.index
        markup = render_document(
            self._corpus[document_id - 1],
            self.store.extracts_for_document(document_id),
            self.render_options,
            on_unlocated=lambda text: self.extract_unlocated.emit(
                UnlocatedExtract(document_id=document_id, text=text)
            ),
        )
        self.current_markup = markup
        self.rendered.emit(markup)
        return markup

    def review(self, code: str, position: int) -> str | None:
        """Preview the ``position``-th extract filed under ``code``."""

        extracts = self.store.extracts_for_code(code)
        if not self._corpus or not 0 <= position < len(extracts):
            return None
        return review_document(self._corpus, extracts[position], self.render_options)

    # Themes

    def activate_sorting_view(self) -> bool:
        """Seed the theme buckets from the counter on first activation."""

        return self.bucketer.ensure_initialized([entry.code for entry in self.store.counter])

    def add_theme(self, current_partition: Partition | None = None) -> bool:
        if not self.bucketer.initialized:
            return False
        self.bucketer.add_bucket(current_partition)
        return True

    def set_theme_partition(self, partition: Partition) -> None:
        self.bucketer.set_partition(partition)

    def export_themes(self, path: Path, current_partition: Partition | None = None) -> ThemeTable:
        if current_partition is not None:
            self.bucketer.set_partition(current_partition)
        table = self.bucketer.export_table()
        write_themes_atomic(path, table)
        return table

    # Observers

    def _on_codebook_changed(self, change: CodebookChange) -> None:
        if change.kind in {"delete", "load"}:
            self._selected_row = None
        if self._selected_code is not None and all(
            entry.code != self._selected_code for entry in self.store.counter
        ):
            self._selected_code = None
        self.refresh()

    def _on_document_changed(self, _index: int) -> None:
        self.refresh()

    def _warn_out_of_range(self) -> None:
        if not self._corpus:
            return
        outside = [
            row.document_id
            for row in self.store.rows
            if not 1 <= row.document_id <= len(self._corpus)
        ]
        if outside:
            log_event(
                logger,
                logging.WARNING,
                "codebook_out_of_range",
                corpus_size=len(self._corpus),
                document_ids=sorted(set(outside)),
            )
