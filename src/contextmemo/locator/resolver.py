"""Find the live span a stored locator describes.

Resolution never mutates the tree.  The container path is evaluated first;
inside the container the visible text is linearized once and tried against
each strategy in turn:

1. offset: the text at ``text_offset`` equals ``text_content``;
2. content search: the first single text node containing ``text_content``;
3. cross-node search (opt-in): the first match in the concatenated text.

Failures come back as a ``NotFound`` value rather than an exception, since
a note whose text has gone is an expected outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from contextmemo.config import get_settings
from contextmemo.dom.range import Boundary, Span
from contextmemo.dom.view import TextMap, WrapperFilter
from contextmemo.locator.selector import PathSyntaxError, query_path

if TYPE_CHECKING:
    from contextmemo.config import Settings
    from contextmemo.dom.tree import Document
    from contextmemo.locator.models import TextSpanDescriptor

logger = logging.getLogger(__name__)


class ResolveStrategy(StrEnum):
    """Which strategy located a span."""

    OFFSET = "offset"
    CONTENT_SEARCH = "content_search"
    CROSS_NODE = "cross_node"


class NotFoundReason(StrEnum):
    """Why a locator could not be resolved."""

    INVALID_PATH = "invalid_path"
    CONTAINER_MISSING = "container_missing"
    TEXT_MISSING = "text_missing"


@dataclass(frozen=True, slots=True)
class NotFound:
    """Resolution failure.  Falsy, so ``if span := resolve(...)`` reads."""

    reason: NotFoundReason
    detail: str = ""

    def __bool__(self) -> bool:
        return False


def _resolve_by_offset(
    text_map: TextMap, descriptor: TextSpanDescriptor
) -> Span | None:
    start = descriptor.text_offset
    end = start + len(descriptor.text_content)
    if text_map.text[start:end] != descriptor.text_content:
        return None
    return text_map.span(start, end, strategy=ResolveStrategy.OFFSET)


def _resolve_by_search(
    text_map: TextMap, descriptor: TextSpanDescriptor
) -> Span | None:
    wanted = descriptor.text_content
    for segment in text_map.segments:
        index = segment.node.data.find(wanted)
        if index != -1:
            return Span(
                Boundary(segment.node, index),
                Boundary(segment.node, index + len(wanted)),
                strategy=ResolveStrategy.CONTENT_SEARCH,
            )
    return None


def _resolve_across_nodes(
    text_map: TextMap, descriptor: TextSpanDescriptor
) -> Span | None:
    index = text_map.text.find(descriptor.text_content)
    if index == -1:
        return None
    return text_map.span(
        index,
        index + len(descriptor.text_content),
        strategy=ResolveStrategy.CROSS_NODE,
    )


def resolve_locator(
    descriptor: TextSpanDescriptor,
    document: Document,
    *,
    settings: Settings | None = None,
) -> Span | NotFound:
    """Resolve *descriptor* against the current state of *document*."""
    settings = settings or get_settings()
    wrappers = WrapperFilter.from_settings(settings)
    path = descriptor.container_path

    try:
        container = query_path(document.root, path, wrappers)
    except PathSyntaxError as exc:
        logger.warning("Stored container path is malformed: %s", exc)
        return NotFound(NotFoundReason.INVALID_PATH, str(exc))
    if container is None:
        logger.info("No element matches container path %r", path)
        return NotFound(NotFoundReason.CONTAINER_MISSING, path)

    text_map = TextMap(wrappers.text_nodes(container))
    span = _resolve_by_offset(text_map, descriptor)
    if span is None:
        span = _resolve_by_search(text_map, descriptor)
    if span is None and settings.locator.cross_node_fallback:
        span = _resolve_across_nodes(text_map, descriptor)
    if span is None:
        logger.info(
            "Text %r no longer present under %r", descriptor.text_content, path
        )
        return NotFound(NotFoundReason.TEXT_MISSING, descriptor.text_content)

    logger.debug("Resolved locator under %r by %s", path, span.strategy)
    return span
