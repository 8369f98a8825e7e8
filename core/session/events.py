"""Synchronous signals connecting session state to its observers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

T = TypeVar("T")

ChangeKind = Literal[
    "add",
    "delete",
    "edit",
    "rename",
    "add_column",
    "remove_column",
    "load",
]


@dataclass(frozen=True)
class CodebookChange:
    """Payload emitted after a codebook mutation has been committed."""

    kind: ChangeKind
    row_index: int | None = None
    column: str | None = None


class Signal(Generic[T]):
    """Ordered list of slots called in turn on every emit.

    Slots run to completion on the caller's thread, so observers always see
    a fully committed state.
    """

    def __init__(self) -> None:
        self._slots: list[Callable[[T], None]] = []

    def connect(self, slot: Callable[[T], None]) -> None:
        if slot not in self._slots:
            self._slots.append(slot)

    def disconnect(self, slot: Callable[[T], None]) -> None:
        if slot in self._slots:
            self._slots.remove(slot)

    def emit(self, value: T) -> None:
        for slot in list(self._slots):
            slot(value)
