"""JSON-file persistence for notes.

The file holds ``{"notes": [...]}`` where each record is
``{id, documentIdentity, content, locator, createdAt}`` with the locator in
its camelCase record form.  Writes go to a temporary file in the same
directory and replace the store in one step.
"""

from __future__ import annotations

import logging
import os
import tempfile
import uuid
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from contextmemo.errors import NoteStoreError
from contextmemo.locator.models import TextSpanDescriptor

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(datetime.now(UTC).timestamp() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


class Note(BaseModel):
    """A note attached to a text span of one document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    document_identity: str
    content: str
    locator: TextSpanDescriptor
    # Epoch milliseconds
    created_at: int = Field(default_factory=_now_ms)


class _StorageData(BaseModel):
    notes: list[Note] = Field(default_factory=list)


class NoteStore:
    """Notes kept in a single JSON file.

    Every call reads the file afresh, so several stores (or processes) over
    one path see each other's writes.  There is no locking.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _load(self) -> list[Note]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            msg = f"Cannot read note store {self.path}: {exc}"
            raise NoteStoreError(msg) from exc
        if not raw.strip():
            return []
        try:
            return _StorageData.model_validate_json(raw).notes
        except ValidationError as exc:
            msg = f"Note store {self.path} is corrupt: {exc}"
            raise NoteStoreError(msg) from exc

    def _write(self, notes: list[Note]) -> None:
        payload = _StorageData(notes=notes).model_dump_json(by_alias=True, indent=2)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d notes to %s", len(notes), self.path)

    def all_notes(self) -> list[Note]:
        return self._load()

    def get_note(self, note_id: str) -> Note | None:
        return next((note for note in self._load() if note.id == note_id), None)

    def save_note(self, note: Note) -> Note:
        """Add *note*, replacing any stored note with the same id."""
        notes = self._load()
        for i, existing in enumerate(notes):
            if existing.id == note.id:
                notes[i] = note
                break
        else:
            notes.append(note)
        self._write(notes)
        logger.info("Saved note %s for %s", note.id, note.document_identity)
        return note

    def delete_note(self, note_id: str) -> bool:
        notes = self._load()
        remaining = [note for note in notes if note.id != note_id]
        if len(remaining) == len(notes):
            return False
        self._write(remaining)
        logger.info("Deleted note %s", note_id)
        return True

    def notes_for_document(self, identity: str) -> list[Note]:
        return [note for note in self._load() if note.document_identity == identity]

    def search_notes(self, query: str) -> list[Note]:
        """Notes whose content or document identity contains *query*.

        Matching is case-insensitive; an empty query matches every note.
        """
        needle = query.casefold()
        return [
            note
            for note in self._load()
            if needle in note.content.casefold()
            or needle in note.document_identity.casefold()
        ]
