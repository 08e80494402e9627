"""Turn a live span into a serializable locator."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from contextmemo.config import get_settings
from contextmemo.dom.range import RangeError
from contextmemo.dom.tree import SKIP_TEXT_TAGS, Element, Text
from contextmemo.dom.view import TextMap, WrapperFilter
from contextmemo.errors import EmptySpanError, NoContainerError
from contextmemo.locator.models import TextSpanDescriptor
from contextmemo.locator.selector import build_container_path

if TYPE_CHECKING:
    from contextmemo.config import Settings
    from contextmemo.dom.range import Span

logger = logging.getLogger(__name__)


def _container_for(span: Span, wrappers: WrapperFilter) -> Element:
    common = span.common_ancestor
    if common is None:
        msg = "Span boundaries share no ancestor"
        raise NoContainerError(msg)
    container = common if isinstance(common, Element) else common.parent
    if container is not None and wrappers.is_wrapper(container):
        container = wrappers.parent(container)
    if container is None:
        msg = f"Span inside {common!r} is not attached to any element"
        raise NoContainerError(msg)
    return container


def build_locator(
    span: Span, *, settings: Settings | None = None
) -> TextSpanDescriptor:
    """Describe *span* so it can be found again after the tree changes.

    The container is the nearest non-wrapper element holding both
    boundaries.  ``text_offset`` counts the container's visible text before
    the start boundary, and ``text_content`` is the visible text between the
    boundaries.

    Raises:
        EmptySpanError: If the span is collapsed, inverted, or holds no
            visible text.
        NoContainerError: If the boundaries are not under a common element.
    """
    if span.collapsed:
        msg = "Span is collapsed"
        raise EmptySpanError(msg)
    settings = settings or get_settings()
    wrappers = WrapperFilter.from_settings(settings)

    container = _container_for(span, wrappers)
    if any(el.tag in SKIP_TEXT_TAGS for el in (container, *container.ancestors())):
        msg = f"Span inside {container!r} is not visible text"
        raise EmptySpanError(msg)
    try:
        span.validate()
    except RangeError as exc:
        raise EmptySpanError(str(exc)) from exc

    text_map = TextMap(wrappers.text_nodes(container))
    text_offset = text_map.offset_of(span.start)
    text_content = text_map.text[text_offset : text_map.offset_of(span.end)]
    if not text_content:
        msg = f"Span inside {container!r} holds no visible text"
        raise EmptySpanError(msg)

    path = build_container_path(
        container,
        wrappers,
        internal_class_marker=settings.marker.internal_class_marker,
    )
    descriptor = TextSpanDescriptor(
        container_path=path,
        text_offset=text_offset,
        text_content=text_content,
        start_offset=span.start.offset if isinstance(span.start.node, Text) else None,
        end_offset=span.end.offset if isinstance(span.end.node, Text) else None,
    )
    logger.debug(
        "Built locator at %r offset %d (%d chars)",
        path,
        text_offset,
        len(text_content),
    )
    return descriptor
