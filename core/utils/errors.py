"""Custom exceptions for core logic."""

from __future__ import annotations

from pathlib import Path


class CodebookFileError(ValueError):
    """Raised when a codebook file cannot be parsed into codebook rows."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        missing_columns: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.missing_columns = missing_columns or []


class CorpusFileError(ValueError):
    """Raised when a corpus file cannot be turned into documents."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class SnapshotError(OSError):
    """Raised when the codebook snapshot could not be written in full."""

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.path = path
