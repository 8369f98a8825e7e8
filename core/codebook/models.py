"""Data models for codebook rows and the per-code counter."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

THEME_COLUMN = "Theme"
CODE_COLUMN = "Code"
EXTRACT_COLUMN = "Extract"
DOCUMENT_ID_COLUMN = "Document_ID"
TIMESTAMP_COLUMN = "Timestamp"

CORE_COLUMNS: tuple[str, ...] = (
    THEME_COLUMN,
    CODE_COLUMN,
    EXTRACT_COLUMN,
    DOCUMENT_ID_COLUMN,
    TIMESTAMP_COLUMN,
)

_FIELD_BY_COLUMN = {
    THEME_COLUMN: "theme",
    CODE_COLUMN: "code",
    EXTRACT_COLUMN: "text",
    DOCUMENT_ID_COLUMN: "document_id",
    TIMESTAMP_COLUMN: "timestamp",
}


class Extract(BaseModel):
    """One codebook row: a literal excerpt of a document plus its metadata.

    ``extra`` holds user-added columns; the store keeps its keys identical
    across all rows.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    theme: str = ""
    code: str = ""
    text: str
    document_id: int
    timestamp: str
    extra: dict[str, str] = Field(default_factory=dict)

    def get_cell(self, column: str) -> str | int:
        field_name = _FIELD_BY_COLUMN.get(column)
        if field_name is not None:
            return getattr(self, field_name)
        return self.extra[column]

    def with_cell(self, column: str, value: str) -> Extract:
        """Return a copy with one cell replaced, validated like a fresh row."""

        field_name = _FIELD_BY_COLUMN.get(column)
        if field_name is None:
            extra = dict(self.extra)
            extra[column] = value
            return self.model_copy(update={"extra": extra})
        payload = self.model_dump()
        payload[field_name] = value
        return Extract.model_validate(payload)

    def to_row(self, columns: list[str]) -> dict[str, str | int]:
        return {column: self.get_cell(column) for column in columns}

    @classmethod
    def from_row(cls, row: dict[str, str], extra_columns: list[str]) -> Extract:
        return cls(
            theme=row.get(THEME_COLUMN, ""),
            code=row.get(CODE_COLUMN, ""),
            text=row.get(EXTRACT_COLUMN, ""),
            document_id=int(row[DOCUMENT_ID_COLUMN]),
            timestamp=row.get(TIMESTAMP_COLUMN, ""),
            extra={column: row.get(column, "") for column in extra_columns},
        )


class CounterEntry(BaseModel):
    """Number of codebook rows sharing one code."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str
    instances: int
