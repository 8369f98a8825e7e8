"""Current-document cursor over a fixed-size corpus."""

from __future__ import annotations

import logging

from core.session.events import Signal
from core.utils.events_log import log_event

logger = logging.getLogger("quokka.session")


class DocumentNavigator:
    """Track the 1-based index of the document on display.

    ``jump_to`` clamps targets above the corpus size but ignores targets
    below 1; callers depend on that asymmetry.
    """

    def __init__(self, corpus_size: int, index: int = 1) -> None:
        if corpus_size < 1:
            raise ValueError("corpus_size must be at least 1")
        self._corpus_size = corpus_size
        self._index = min(max(index, 1), corpus_size)
        self.changed: Signal[int] = Signal()

    @property
    def index(self) -> int:
        return self._index

    @property
    def corpus_size(self) -> int:
        return self._corpus_size

    def reset(self, corpus_size: int) -> None:
        """Point at document 1 of a newly loaded corpus."""

        if corpus_size < 1:
            raise ValueError("corpus_size must be at least 1")
        self._corpus_size = corpus_size
        self._move(1, "reset")

    def next(self) -> bool:
        if self._index >= self._corpus_size:
            return False
        self._move(self._index + 1, "next")
        return True

    def prev(self) -> bool:
        if self._index <= 1:
            return False
        self._move(self._index - 1, "prev")
        return True

    def jump_to(self, target: int) -> bool:
        """Move to ``target``; returns False when the target was ignored."""

        if target < 1:
            log_event(logger, logging.DEBUG, "navigate_ignored", target=target)
            return False
        self._move(min(target, self._corpus_size), "jump")
        return True

    def _move(self, index: int, action: str) -> None:
        self._index = index
        log_event(logger, logging.DEBUG, "navigate", action=action, index=index)
        self.changed.emit(index)
