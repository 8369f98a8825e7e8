"""Typer CLI entrypoint for quokka."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from apps.cli.io import read_corpus, read_partition, write_json_atomic, write_text_atomic
from core.config.settings import QuokkaSettings, load_settings
from core.highlight.span_merger import normalize_text
from core.session.session import CodingSession
from core.utils.errors import CodebookFileError, CorpusFileError, SnapshotError

app = typer.Typer(help="Qualitative coding CLI", rich_markup_mode=None)
logger = logging.getLogger("quokka.cli")

CodebookOption = Annotated[Path, typer.Option("--codebook", help="Codebook CSV file.")]
CorpusOption = Annotated[
    Path, typer.Option("--corpus", exists=True, dir_okay=False, help="Corpus .csv/.txt/.docx.")
]
TextColumnOption = Annotated[
    str | None, typer.Option("--text-column", help="CSV column holding document text.")
]
SettingsOption = Annotated[
    Path | None, typer.Option("--settings", exists=True, dir_okay=False, help="Settings YAML.")
]
OutOption = Annotated[Path | None, typer.Option("--out", help="Write output to this file.")]


@app.callback()
def cli_callback(
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="Log quokka events at this level.")
    ] = None,
) -> None:
    """Batch commands over one coding session."""

    if log_level is None:
        return
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        typer.echo(f"ERROR: unknown --log-level '{log_level}'.")
        raise typer.Exit(code=1)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s %(message)s")


@app.command("render")
def render_command(
    corpus: CorpusOption,
    codebook: Annotated[Path | None, typer.Option("--codebook")] = None,
    document: Annotated[int, typer.Option("--document", help="1-based document number.")] = 1,
    text_column: TextColumnOption = None,
    settings: SettingsOption = None,
    out: OutOption = None,
) -> None:
    """Render one document with its saved extracts highlighted."""

    with _cli_errors():
        session = _open_session(settings, codebook=codebook, corpus=corpus, text_column=text_column)
        session.jump_to_document(document)
        _emit(session.current_markup or "", out)


@app.command("counter")
def counter_command(codebook: CodebookOption, out: OutOption = None) -> None:
    """Print the number of extracts per code as JSON."""

    with _cli_errors():
        session = _open_session(None, codebook=codebook)
        payload = [entry.model_dump() for entry in session.counter]
        _emit_json(payload, out)


@app.command("add-extract")
def add_extract_command(
    corpus: CorpusOption,
    codebook: CodebookOption,
    document: Annotated[int, typer.Option("--document")],
    text: Annotated[str, typer.Option("--text")],
    code: Annotated[str, typer.Option("--code")] = "",
    text_column: TextColumnOption = None,
    settings: SettingsOption = None,
) -> None:
    """Append an extract of DOCUMENT to the codebook."""

    with _cli_errors():
        session = _open_session(
            settings, codebook=codebook, corpus=corpus, text_column=text_column, persist=True
        )
        if document < 1 or document > len(session.corpus):
            _fail(f"--document must be between 1 and {len(session.corpus)}.")
        if text not in normalize_text(session.corpus[document - 1]):
            _fail(f"extract text not found in document {document}.")
        session.jump_to_document(document)
        extract = session.store.add_extract(text, document, code)
        if extract is None:
            _fail("extract text must not be empty.")
        typer.echo(f"Added extract to document {document} ({len(session.store)} rows).")


@app.command("delete-extract")
def delete_extract_command(
    codebook: CodebookOption,
    row: Annotated[int, typer.Option("--row", help="1-based codebook row.")],
    settings: SettingsOption = None,
) -> None:
    """Delete one codebook row."""

    with _cli_errors():
        session = _open_session(settings, codebook=codebook, persist=True)
        session.select_codebook_row(row - 1)
        removed = session.delete_selected_extract()
        if removed is None:
            _fail(f"--row must be between 1 and {len(session.store)}.")
        typer.echo(f"Deleted row {row} ({len(session.store)} rows left).")


@app.command("edit-cell")
def edit_cell_command(
    codebook: CodebookOption,
    row: Annotated[int, typer.Option("--row", help="1-based codebook row.")],
    column: Annotated[str, typer.Option("--column")],
    value: Annotated[str, typer.Option("--value")],
    settings: SettingsOption = None,
) -> None:
    """Edit one codebook cell."""

    with _cli_errors():
        session = _open_session(settings, codebook=codebook, persist=True)
        if not session.edit_codebook_cell(row - 1, column, value):
            _fail(f"cannot set column '{column}' of row {row}.")
        typer.echo(f"Updated {column} of row {row}.")


@app.command("rename-code")
def rename_code_command(
    codebook: CodebookOption,
    old: Annotated[str, typer.Option("--old")],
    new: Annotated[str, typer.Option("--new")],
    settings: SettingsOption = None,
) -> None:
    """Rename a code on every extract that carries it."""

    with _cli_errors():
        session = _open_session(settings, codebook=codebook, persist=True)
        renamed = session.store.rename_code(old, new)
        typer.echo(f"Renamed {renamed} extract(s) from '{old}' to '{new}'.")


@app.command("add-column")
def add_column_command(
    codebook: CodebookOption,
    name: Annotated[str, typer.Option("--name")] = "",
    default: Annotated[str, typer.Option("--default")] = "",
    settings: SettingsOption = None,
) -> None:
    """Add a free-form column to every codebook row."""

    with _cli_errors():
        session = _open_session(settings, codebook=codebook, persist=True)
        column = session.add_column(name, default)
        if column is None:
            typer.echo("Column already present; codebook unchanged.")
            return
        typer.echo(f"Added column '{column}'.")


@app.command("remove-column")
def remove_column_command(
    codebook: CodebookOption,
    name: Annotated[str, typer.Option("--name")],
    settings: SettingsOption = None,
) -> None:
    """Remove a user-added column from every codebook row."""

    with _cli_errors():
        session = _open_session(settings, codebook=codebook, persist=True)
        if not session.remove_column(name):
            typer.echo(f"Column '{name}' not removed; codebook unchanged.")
            return
        typer.echo(f"Removed column '{name}'.")


@app.command("export-codebook")
def export_codebook_command(
    codebook: CodebookOption,
    out: Annotated[Path, typer.Option("--out")],
) -> None:
    """Export the codebook sorted by timestamp, newest first."""

    with _cli_errors():
        session = _open_session(None, codebook=codebook)
        session.export_codebook(out)
        typer.echo(f"Wrote {len(session.store)} rows to {out}.")


@app.command("export-themes")
def export_themes_command(
    codebook: CodebookOption,
    out: Annotated[Path, typer.Option("--out")],
    partition: Annotated[
        Path | None,
        typer.Option(
            "--partition",
            exists=True,
            dir_okay=False,
            help="YAML mapping of theme name to codes (or a list of code lists).",
        ),
    ] = None,
) -> None:
    """Export codes sorted into themes as a padded table."""

    with _cli_errors():
        session = _open_session(None, codebook=codebook)
        session.activate_sorting_view()
        current = read_partition(partition) if partition is not None else None
        table = session.export_themes(out, current)
        typer.echo(f"Wrote {len(table.header)} theme(s) to {out}.")


@app.command("review")
def review_command(
    corpus: CorpusOption,
    codebook: CodebookOption,
    code: Annotated[str, typer.Option("--code")],
    position: Annotated[int, typer.Option("--position", help="1-based extract position.")] = 1,
    text_column: TextColumnOption = None,
    out: OutOption = None,
) -> None:
    """Show one extract filed under CODE in the context of its document."""

    with _cli_errors():
        session = _open_session(None, codebook=codebook, corpus=corpus, text_column=text_column)
        markup = session.review(code, position - 1)
        if markup is None:
            _fail(f"no extract #{position} for code '{code}'.")
        _emit(markup, out)


def _open_session(
    settings_path: Path | None,
    *,
    codebook: Path | None = None,
    corpus: Path | None = None,
    text_column: str | None = None,
    persist: bool = False,
) -> CodingSession:
    settings = load_settings(settings_path) if settings_path is not None else QuokkaSettings()
    if codebook is not None:
        settings = settings.model_copy(update={"snapshot_path": codebook})

    session = CodingSession(settings, persist=persist)
    if codebook is not None and codebook.exists():
        session.load_codebook(codebook)
    if corpus is not None:
        session.load_corpus(read_corpus(corpus, text_column))
    return session


@contextmanager
def _cli_errors() -> Iterator[None]:
    try:
        yield
    except (CodebookFileError, CorpusFileError, SnapshotError, ValueError) as exc:
        logger.debug("command failed", exc_info=True)
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc


def _fail(message: str) -> NoReturn:
    typer.echo(f"ERROR: {message}")
    raise typer.Exit(code=1)


def _emit(content: str, out: Path | None) -> None:
    if out is None:
        typer.echo(content)
        return
    write_text_atomic(out, content)


def _emit_json(payload: object, out: Path | None) -> None:
    if out is None:
        typer.echo(json.dumps(payload, ensure_ascii=False, sort_keys=True))
        return
    write_json_atomic(out, payload)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
