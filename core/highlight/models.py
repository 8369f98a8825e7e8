"""Data models for extract location and highlight spans."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class LocatedExtract:
    """First literal occurrence of one extract inside normalized text.

    ``end`` is inclusive, so ``text[start:end + 1] == extract``.
    """

    order: int
    extract: str
    start: int
    end: int


@dataclass(frozen=True)
class HighlightSpan:
    """Disjoint highlight range, 0-based with an inclusive end."""

    start: int
    end: int
    is_latest: bool = False

    def contains(self, offset: int) -> bool:
        return self.start <= offset <= self.end


class RenderOptions(BaseModel):
    """Display options for highlight markup."""

    model_config = ConfigDict(extra="forbid")

    highlight_color: str = "powderblue"
    scroll_threshold: int = Field(default=600, ge=0)
    font_size_px: int = Field(default=20, gt=0)
    container_id: str = "textDisplay"
    paragraph_id: str = "currentText"
    latest_id: str = "lastString"
