"""Clean view of the tree: the text and structure the locators measure.

Highlight wrappers are the annotator's own side effect on the document, so
every pass that measures the tree (offset counting, path building, path
matching, text search) goes through one ``WrapperFilter``:

* wrappers are transparent: never a container, never a path component,
  never counted as a same-tag sibling, and their children count as children
  of the wrapper's parent;
* text in ``SKIP_TEXT_TAGS`` elements is never visible;
* text inside wrappers is not visible unless ``count_wrapped_text`` is on;
  selections, which users drag over highlighted text too, always include it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from contextmemo.config import get_settings
from contextmemo.dom.range import Boundary, Span, compare_points
from contextmemo.dom.tree import SKIP_TEXT_TAGS, Element, Node, Text

if TYPE_CHECKING:
    from collections.abc import Iterable

    from contextmemo.config import Settings


@dataclass(frozen=True, slots=True)
class WrapperFilter:
    """Recognises highlight wrappers and hides them from measurements."""

    class_name: str
    id_attribute: str
    count_wrapped_text: bool = False

    @classmethod
    def from_settings(
        cls, settings: Settings, *, count_wrapped_text: bool | None = None
    ) -> WrapperFilter:
        """Filter for the configured wrappers.

        *count_wrapped_text* overrides ``settings.locator.count_wrapped_text``.
        """
        if count_wrapped_text is None:
            count_wrapped_text = settings.locator.count_wrapped_text
        return cls(
            class_name=settings.marker.class_name,
            id_attribute=settings.marker.id_attribute,
            count_wrapped_text=count_wrapped_text,
        )

    def is_wrapper(self, node: Node | None) -> bool:
        return (
            isinstance(node, Element)
            and self.id_attribute in node.attrs
            and self.class_name in node.classes
        )

    def parent(self, node: Node) -> Element | None:
        """Nearest ancestor that is not a wrapper."""
        for ancestor in node.ancestors():
            if not self.is_wrapper(ancestor):
                return ancestor
        return None

    def child_elements(self, element: Element) -> list[Element]:
        """Element children with wrappers replaced by their own children."""
        found: list[Element] = []
        for child in element.children:
            if not isinstance(child, Element):
                continue
            if self.is_wrapper(child):
                found.extend(self.child_elements(child))
            else:
                found.append(child)
        return found

    def same_tag_siblings(self, element: Element) -> list[Element]:
        """Elements sharing *element*'s tag under its clean-view parent."""
        parent = self.parent(element)
        if parent is None:
            return [element]
        return [el for el in self.child_elements(parent) if el.tag == element.tag]

    def text_nodes(self, container: Element) -> list[Text]:
        """Visible text nodes under *container* in document order."""
        found: list[Text] = []
        stack: list[Node] = list(reversed(container.children))
        while stack:
            node = stack.pop()
            if isinstance(node, Text):
                found.append(node)
                continue
            assert isinstance(node, Element)
            if node.tag in SKIP_TEXT_TAGS:
                continue
            if not self.count_wrapped_text and self.is_wrapper(node):
                continue
            stack.extend(reversed(node.children))
        return found


@dataclass(frozen=True, slots=True)
class TextSegment:
    """A text node's slice of a linearized text stream."""

    node: Text
    start: int

    @property
    def end(self) -> int:
        return self.start + len(self.node.data)


class TextMap:
    """Concatenated text of a node list with position <-> boundary mapping."""

    __slots__ = ("segments", "text")

    def __init__(self, nodes: Iterable[Text]) -> None:
        self.segments: list[TextSegment] = []
        parts: list[str] = []
        position = 0
        for node in nodes:
            self.segments.append(TextSegment(node, position))
            parts.append(node.data)
            position += len(node.data)
        self.text = "".join(parts)

    def __len__(self) -> int:
        return len(self.text)

    def offset_of(self, boundary: Boundary) -> int:
        """Characters of this stream that precede *boundary*."""
        offset = 0
        for segment in self.segments:
            node = segment.node
            if node is boundary.node:
                return segment.start + min(boundary.offset, len(node.data))
            if compare_points(node, len(node.data), boundary.node, boundary.offset) > 0:
                break
            offset = segment.end
        return offset

    def boundary_at(self, position: int, *, is_end: bool = False) -> Boundary:
        """Boundary for a stream *position*.

        Start boundaries prefer the beginning of the following text node over
        the end of the previous one; end boundaries prefer the reverse, so a
        span never begins or ends on an empty slice of a neighbouring node.
        """
        if not self.segments or not 0 <= position <= len(self.text):
            msg = f"Position {position} outside text of length {len(self.text)}"
            raise ValueError(msg)
        for segment in self.segments:
            if is_end and segment.start < position <= segment.end:
                return Boundary(segment.node, position - segment.start)
            if not is_end and segment.start <= position < segment.end:
                return Boundary(segment.node, position - segment.start)
        # Position at the very start (end boundary) or very end (start boundary)
        if position == 0:
            first = self.segments[0]
            return Boundary(first.node, 0)
        last = self.segments[-1]
        return Boundary(last.node, len(last.node.data))

    def span(self, start: int, end: int, *, strategy: str | None = None) -> Span:
        return Span(
            self.boundary_at(start),
            self.boundary_at(end, is_end=True),
            strategy=strategy,
        )


def select_text(
    root: Element,
    text: str,
    occurrence: int = 1,
    *,
    settings: Settings | None = None,
) -> Span | None:
    """Select the *occurrence*-th match of *text*, as a user would.

    Matches may cross element boundaries.  Wrapper text is included since
    highlighted text is still selectable.
    """
    if not text or occurrence < 1:
        return None
    selectable = WrapperFilter.from_settings(
        settings or get_settings(), count_wrapped_text=True
    )
    text_map = TextMap(selectable.text_nodes(root))
    index = -1
    for _ in range(occurrence):
        index = text_map.text.find(text, index + 1)
        if index == -1:
            return None
    return text_map.span(index, index + len(text))
