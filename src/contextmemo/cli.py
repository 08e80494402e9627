"""Command-line access to notes on HTML files.

Usage:
    contextmemo annotate page.html --text "world" --note "Check this"
    contextmemo restore page.html --output highlighted.html
    contextmemo list [--document-id URI]
    contextmemo search QUERY
    contextmemo delete NOTE_ID [--page page.html --output out.html]

A page's document identity defaults to its ``file://`` URI, so notes made on
one path are restored on the same path.  ``--store`` overrides
``STORE__PATH``.
"""

from __future__ import annotations

import argparse
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from contextmemo import _setup_logging
from contextmemo.config import get_settings
from contextmemo.dom import parse_html, select_text
from contextmemo.errors import AnnotatorError, NoteStoreError
from contextmemo.session import AnnotationSession, NoteState
from contextmemo.store import NoteStore

if TYPE_CHECKING:
    from collections.abc import Sequence

    from contextmemo.dom import Document
    from contextmemo.store import Note

console = Console()

_STATE_STYLES = {
    NoteState.LIVE_VISIBLE: "green",
    NoteState.ANCHORED: "yellow",
    NoteState.UNANCHORED: "red",
}


def _build_parser() -> argparse.ArgumentParser:
    """Build argparse parser for contextmemo subcommands."""
    parser = argparse.ArgumentParser(
        prog="contextmemo",
        description="Attach notes to text in HTML files and find them again.",
    )
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Note store file (default: STORE__PATH)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # annotate
    annotate_p = sub.add_parser("annotate", help="Attach a note to text on a page")
    annotate_p.add_argument("page", type=Path, help="HTML file")
    annotate_p.add_argument("--text", required=True, help="Text to annotate")
    annotate_p.add_argument(
        "--occurrence", type=int, default=1, help="Which match of --text (default: 1)"
    )
    annotate_p.add_argument("--note", required=True, help="Note content")
    annotate_p.add_argument("--document-id", default=None, help="Document identity")
    annotate_p.add_argument(
        "--output", type=Path, default=None, help="Write highlighted HTML"
    )

    # restore
    restore_p = sub.add_parser("restore", help="Find and highlight stored notes")
    restore_p.add_argument("page", type=Path, help="HTML file")
    restore_p.add_argument("--document-id", default=None, help="Document identity")
    restore_p.add_argument(
        "--output", type=Path, default=None, help="Write highlighted HTML"
    )

    # list
    list_p = sub.add_parser("list", help="List stored notes")
    list_p.add_argument(
        "--document-id", default=None, help="Only notes for this document"
    )

    # search
    search_p = sub.add_parser("search", help="Search note content and documents")
    search_p.add_argument("query", help="Case-insensitive search text")

    # delete
    delete_p = sub.add_parser("delete", help="Delete a note")
    delete_p.add_argument("note_id", help="Note id")
    delete_p.add_argument(
        "--page", type=Path, default=None, help="Highlighted HTML file"
    )
    delete_p.add_argument(
        "--output", type=Path, default=None, help="Write the page without the highlight"
    )

    return parser


def _identity_for(page: Path, document_id: str | None) -> str:
    return document_id or page.resolve().as_uri()


def _require_page(page: Path, con: Console) -> Document:
    """Parse *page* or exit with error."""
    try:
        html = page.read_text(encoding="utf-8")
    except OSError as exc:
        con.print(f"[red]Error:[/] cannot read {page}: {exc}")
        sys.exit(1)
    return parse_html(html)


def _write_page(document: Document, output: Path | None, con: Console) -> None:
    if output is None:
        return
    output.write_text(document.to_html(), encoding="utf-8")
    con.print(f"Wrote [cyan]{output}[/]")


def _format_created(created_at: int) -> str:
    return datetime.fromtimestamp(created_at / 1000, tz=UTC).strftime("%Y-%m-%d %H:%M")


def _notes_table(title: str, notes: Sequence[Note]) -> Table:
    table = Table(title=title)
    table.add_column("Id", style="cyan")
    table.add_column("Document")
    table.add_column("Text")
    table.add_column("Note")
    table.add_column("Created")
    for note in notes:
        table.add_row(
            note.id,
            note.document_identity,
            note.locator.text_content,
            note.content,
            _format_created(note.created_at),
        )
    return table


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_annotate(
    args: argparse.Namespace, store: NoteStore, *, console: Console | None = None
) -> None:
    """Select text on a page and attach a note to it."""
    con = console or globals()["console"]
    document = _require_page(args.page, con)
    span = select_text(document.body, args.text, args.occurrence)
    if span is None:
        con.print(
            f"[red]Error:[/] occurrence {args.occurrence} of {args.text!r} "
            f"not found in {args.page}"
        )
        sys.exit(1)

    session = AnnotationSession(
        document, _identity_for(args.page, args.document_id), store=store
    )
    try:
        note = session.annotate(span, args.note)
    except AnnotatorError as exc:
        con.print(f"[red]Error:[/] cannot annotate {args.text!r}: {exc}")
        sys.exit(1)

    state = session.state(note.id)
    con.print(f"[green]Created[/] note {note.id} ({state})")
    con.print(f"  [dim]{note.locator.container_path}[/] @ {note.locator.text_offset}")
    _write_page(document, args.output, con)


def _cmd_restore(
    args: argparse.Namespace, store: NoteStore, *, console: Console | None = None
) -> None:
    """Resolve every stored note for a page."""
    con = console or globals()["console"]
    document = _require_page(args.page, con)
    identity = _identity_for(args.page, args.document_id)
    notes = store.notes_for_document(identity)
    if not notes:
        con.print(f"[yellow]No notes for[/] {identity}")
        return

    session = AnnotationSession(document, identity, store=store)
    results = session.restore(notes)

    table = Table(title=f"Notes for {identity}")
    table.add_column("Id", style="cyan")
    table.add_column("Text")
    table.add_column("State")
    for note in notes:
        state = results.get(note.id, NoteState.UNANCHORED)
        style = _STATE_STYLES.get(state, "white")
        table.add_row(note.id, note.locator.text_content, f"[{style}]{state}[/]")
    con.print(table)
    _write_page(document, args.output, con)


def _cmd_list(
    args: argparse.Namespace, store: NoteStore, *, console: Console | None = None
) -> None:
    """List stored notes as a Rich table."""
    con = console or globals()["console"]
    if args.document_id:
        notes = store.notes_for_document(args.document_id)
    else:
        notes = store.all_notes()
    if not notes:
        con.print("[yellow]No notes found.[/]")
        return
    con.print(_notes_table("Notes", notes))


def _cmd_search(
    args: argparse.Namespace, store: NoteStore, *, console: Console | None = None
) -> None:
    """Search notes by content or document."""
    con = console or globals()["console"]
    notes = store.search_notes(args.query)
    if not notes:
        con.print(f"[yellow]No notes match[/] {args.query!r}")
        return
    con.print(_notes_table(f"Notes matching {args.query!r}", notes))


def _cmd_delete(
    args: argparse.Namespace, store: NoteStore, *, console: Console | None = None
) -> None:
    """Delete a note, removing its highlight from a page when given."""
    con = console or globals()["console"]
    note = store.get_note(args.note_id)
    if note is None:
        con.print(f"[red]Error:[/] no note with id {args.note_id!r}")
        sys.exit(1)

    if args.page is None:
        store.delete_note(note.id)
        con.print(f"[green]Deleted[/] note {note.id}")
        return

    document = _require_page(args.page, con)
    session = AnnotationSession(document, note.document_identity, store=store)
    had_highlight = session.marker.find_wrapper(note.id) is not None
    session.delete(note.id)
    session.close()
    suffix = " and its highlight" if had_highlight else ""
    con.print(f"[green]Deleted[/] note {note.id}{suffix}")
    _write_page(document, args.output, con)


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point for contextmemo."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    _setup_logging(settings.app.log_dir, settings.app.log_level)
    store = NoteStore(args.store or settings.store.path)

    try:
        match args.command:
            case "annotate":
                _cmd_annotate(args, store)
            case "restore":
                _cmd_restore(args, store)
            case "list":
                _cmd_list(args, store)
            case "search":
                _cmd_search(args, store)
            case "delete":
                _cmd_delete(args, store)
    except NoteStoreError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
