"""Exceptions raised by the annotation core.

None of these is fatal to the surrounding process.  Build-time errors mean
"skip creating this note"; ``HighlightFailedError`` means the note and its
locator are fine but no visual marking appears.
"""

from __future__ import annotations


class AnnotatorError(Exception):
    """Base class for annotation errors."""


class EmptySpanError(AnnotatorError):
    """The selected span is collapsed or contains no visible text."""


class NoContainerError(AnnotatorError):
    """The span is not attached to any element that could anchor it."""


class HighlightFailedError(AnnotatorError):
    """A span could not be wrapped in a highlight element."""

    def __init__(self, identifier: str, reason: str) -> None:
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Could not highlight {identifier!r}: {reason}")


class NoteStoreError(AnnotatorError):
    """The note store file exists but cannot be read."""


class SessionClosedError(AnnotatorError):
    """The annotation session was closed and no longer holds a document."""
