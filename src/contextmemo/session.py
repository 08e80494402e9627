"""Per-document annotation workflow.

An ``AnnotationSession`` ties one document instance to the note store: it
creates notes from selections, re-finds stored notes after a (re)load, and
tracks where each note is in its lifecycle::

    UNANCHORED -> ANCHORED -> LIVE_VISIBLE <-> LIVE_PLAIN -> REMOVED

A new session (a reload) starts every note at ``UNANCHORED``.  Notes are
resolved one at a time and independently, so a note that fails never stops
the rest of a batch.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from contextmemo.config import get_settings
from contextmemo.errors import HighlightFailedError, SessionClosedError
from contextmemo.locator import build_locator, resolve_locator
from contextmemo.marker import SpanMarker
from contextmemo.store import Note, NoteStore

if TYPE_CHECKING:
    from collections.abc import Iterable

    from contextmemo.config import Settings
    from contextmemo.dom.range import Span
    from contextmemo.dom.tree import Document

logger = logging.getLogger(__name__)


class NoteState(StrEnum):
    """Lifecycle state of a note within one session."""

    UNANCHORED = "unanchored"
    ANCHORED = "anchored"
    LIVE_VISIBLE = "live_visible"
    LIVE_PLAIN = "live_plain"
    REMOVED = "removed"


class AnnotationSession:
    """Notes for one loaded document.

    Args:
        document: The live document tree.
        identity: Document identity the notes are filed under (a URL or
            file URI).
        store: Note store; defaults to one at ``settings.store.path``.
        settings: Defaults to ``get_settings()``.
    """

    def __init__(
        self,
        document: Document,
        identity: str,
        *,
        store: NoteStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.identity = identity
        if store is None:
            store = NoteStore(self._settings.store.path)
        self.store = store
        self._document: Document | None = document
        self._marker: SpanMarker | None = SpanMarker(document, settings=self._settings)
        self._notes: dict[str, Note] = {}
        self._states: dict[str, NoteState] = {}

    @property
    def closed(self) -> bool:
        return self._document is None

    @property
    def document(self) -> Document:
        if self._document is None:
            msg = f"Session for {self.identity} is closed"
            raise SessionClosedError(msg)
        return self._document

    @property
    def marker(self) -> SpanMarker:
        if self._marker is None:
            msg = f"Session for {self.identity} is closed"
            raise SessionClosedError(msg)
        return self._marker

    def state(self, note_id: str) -> NoteState | None:
        """Current state of *note_id*, or None if this session never saw it."""
        return self._states.get(note_id)

    def states(self) -> dict[str, NoteState]:
        return dict(self._states)

    # -- internals ----------------------------------------------------------------

    def _mark(self, note: Note, span: Span) -> NoteState:
        try:
            self.marker.wrap(span, note.id)
        except HighlightFailedError as exc:
            logger.warning("Note %s is anchored but not highlighted: %s", note.id, exc)
            state = NoteState.ANCHORED
        else:
            state = NoteState.LIVE_VISIBLE
        self._states[note.id] = state
        return state

    def _anchor(self, note: Note) -> NoteState:
        if self.marker.find_wrapper(note.id) is not None:
            self._states[note.id] = NoteState.LIVE_VISIBLE
            return NoteState.LIVE_VISIBLE
        result = resolve_locator(note.locator, self.document, settings=self._settings)
        if not result:
            logger.info("Note %s not found (%s)", note.id, result.reason)
            self._states[note.id] = NoteState.UNANCHORED
            return NoteState.UNANCHORED
        self._states[note.id] = NoteState.ANCHORED
        return self._mark(note, result)

    # -- operations -----------------------------------------------------------------

    def annotate(self, span: Span, content: str, *, note_id: str | None = None) -> Note:
        """Create, persist and highlight a note for *span*.

        Raises:
            EmptySpanError: If the span holds no text; nothing is saved.
            NoContainerError: If the span cannot be anchored; nothing is saved.
            SessionClosedError: If the session was closed.
        """
        if self.closed:
            msg = f"Session for {self.identity} is closed"
            raise SessionClosedError(msg)
        descriptor = build_locator(span, settings=self._settings)
        note = Note(
            document_identity=self.identity,
            content=content,
            locator=descriptor,
        )
        if note_id is not None:
            note = note.model_copy(update={"id": note_id})
        self.store.save_note(note)
        self._notes[note.id] = note
        self._states[note.id] = NoteState.ANCHORED
        self._mark(note, span)
        return note

    def restore(self, notes: Iterable[Note] | None = None) -> dict[str, NoteState]:
        """Resolve and highlight notes for this document.

        Defaults to every stored note filed under this session's identity.
        Notes for other documents are ignored; deleted and hidden notes keep
        their state.  Each note is handled on its own and a failure is
        logged, never raised.
        """
        if self.closed:
            logger.info("Dropping restore for closed session %s", self.identity)
            return {}
        if notes is None:
            notes = self.store.notes_for_document(self.identity)

        results: dict[str, NoteState] = {}
        for note in notes:
            if note.document_identity != self.identity:
                continue
            current = self._states.get(note.id)
            if current in (NoteState.REMOVED, NoteState.LIVE_PLAIN):
                results[note.id] = current
                continue
            self._notes[note.id] = note
            try:
                results[note.id] = self._anchor(note)
            except Exception:
                logger.exception("Failed to restore note %s", note.id)
                self._states[note.id] = NoteState.UNANCHORED
                results[note.id] = NoteState.UNANCHORED
        found = sum(state is NoteState.LIVE_VISIBLE for state in results.values())
        logger.info(
            "Restored %d of %d notes for %s", found, len(results), self.identity
        )
        return results

    def structure_changed(self) -> dict[str, NoteState]:
        """Retry notes that are not anchored after the document changed.

        Notes whose highlight was removed by the change are retried too.
        """
        if self.closed:
            logger.info("Dropping retry for closed session %s", self.identity)
            return {}
        for note_id, state in self._states.items():
            detached = self.marker.find_wrapper(note_id) is None
            if state is NoteState.LIVE_VISIBLE and detached:
                self._states[note_id] = NoteState.UNANCHORED
        pending = [
            note
            for note_id, note in self._notes.items()
            if self._states.get(note_id) is NoteState.UNANCHORED
        ]
        if not pending:
            return {}
        return self.restore(pending)

    def hide(self, note_id: str) -> NoteState | None:
        """Remove the highlight of a visible note, keeping the note."""
        if self.closed:
            logger.info("Dropping hide of %s for closed session", note_id)
            return None
        state = self._states.get(note_id)
        if state is not NoteState.LIVE_VISIBLE:
            logger.debug("Note %s is %s, nothing to hide", note_id, state)
            return state
        self.marker.unwrap(note_id)
        self._states[note_id] = NoteState.LIVE_PLAIN
        return NoteState.LIVE_PLAIN

    def show(self, note_id: str) -> NoteState | None:
        """Highlight a hidden note again, re-resolving its locator."""
        if self.closed:
            logger.info("Dropping show of %s for closed session", note_id)
            return None
        state = self._states.get(note_id)
        note = self._notes.get(note_id)
        if state is not NoteState.LIVE_PLAIN or note is None:
            logger.debug("Note %s is %s, nothing to show", note_id, state)
            return state
        return self._anchor(note)

    def delete(self, note_id: str) -> bool:
        """Remove the note's highlight and its stored record.

        Returns whether a stored record was deleted.
        """
        if self.closed:
            logger.info("Dropping delete of %s for closed session", note_id)
            return False
        self.marker.unwrap(note_id)
        removed = self.store.delete_note(note_id)
        self._notes.pop(note_id, None)
        self._states[note_id] = NoteState.REMOVED
        return removed

    def close(self) -> None:
        """Forget the document; later operations are dropped."""
        if self.closed:
            return
        self._document = None
        self._marker = None
        logger.debug("Closed session for %s", self.identity)
