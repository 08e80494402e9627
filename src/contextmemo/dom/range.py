"""Boundary points and spans over the document tree.

A ``Span`` is the live-selection primitive the annotation core consumes:
two boundary points, each a node plus an offset (characters for text nodes,
child index for elements).  The mutating operations follow the DOM Range
algorithms (``extractContents``, ``insertNode``, ``surroundContents``) so
that highlighting behaves the way it does in a browser.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from contextmemo.dom.tree import RAW_TEXT_TAGS, VOID_TAGS, Element, Node, Text

logger = logging.getLogger(__name__)


class RangeError(Exception):
    """A span operation is invalid for the current tree."""


@dataclass(frozen=True, slots=True)
class Boundary:
    """A point in the tree: *offset* characters or children into *node*."""

    node: Node
    offset: int


def _precedes(a: Node, b: Node) -> bool:
    """True when *a* comes before *b* in document order."""
    return a.path() < b.path()


def compare_points(a_node: Node, a_offset: int, b_node: Node, b_offset: int) -> int:
    """Return -1, 0 or 1 as point A is before, equal to, or after point B."""
    if a_node is b_node:
        return (a_offset > b_offset) - (a_offset < b_offset)
    if _precedes(b_node, a_node):
        return -compare_points(b_node, b_offset, a_node, a_offset)
    if a_node.is_inclusive_ancestor_of(b_node):
        child = b_node
        while child.parent is not a_node:
            assert child.parent is not None
            child = child.parent
        if child.index < a_offset:
            return 1
    return -1


def _accepts_elements(parent: Element) -> bool:
    return parent.tag not in VOID_TAGS and parent.tag not in RAW_TEXT_TAGS


@dataclass
class Span:
    """A contiguous run of the document between two boundary points.

    ``strategy`` records how a resolved span was found; spans built from a
    live selection leave it unset.
    """

    start: Boundary
    end: Boundary
    strategy: str | None = None

    @property
    def collapsed(self) -> bool:
        return self.start.node is self.end.node and self.start.offset == self.end.offset

    @property
    def common_ancestor(self) -> Node | None:
        """Deepest node containing both boundaries, or None across trees."""
        node: Node | None = self.start.node
        while node is not None and not node.is_inclusive_ancestor_of(self.end.node):
            node = node.parent
        return node

    def validate(self) -> None:
        """Raise ``RangeError`` unless both boundaries are usable and ordered."""
        for boundary in (self.start, self.end):
            if not 0 <= boundary.offset <= boundary.node.length:
                msg = (
                    f"Offset {boundary.offset} outside {boundary.node!r} "
                    f"of length {boundary.node.length}"
                )
                raise RangeError(msg)
        if self.start.node.root is not self.end.node.root:
            msg = "Span boundaries belong to different trees"
            raise RangeError(msg)
        if self._compare(self.start, self.end) > 0:
            msg = "Span start is after its end"
            raise RangeError(msg)

    @staticmethod
    def _compare(a: Boundary, b: Boundary) -> int:
        return compare_points(a.node, a.offset, b.node, b.offset)

    def _contains(self, node: Node) -> bool:
        return (
            compare_points(node, 0, self.start.node, self.start.offset) > 0
            and compare_points(node, node.length, self.end.node, self.end.offset) < 0
        )

    def text(self) -> str:
        """Every character between the boundaries (``Range.toString``)."""
        start, end = self.start, self.end
        if start.node is end.node and isinstance(start.node, Text):
            return start.node.data[start.offset : end.offset]
        common = self.common_ancestor
        if not isinstance(common, Element):
            return ""
        parts: list[str] = []
        for node in common.iter_text():
            if node is start.node:
                parts.append(node.data[start.offset :])
            elif node is end.node:
                parts.append(node.data[: end.offset])
            elif self._contains(node):
                parts.append(node.data)
        return "".join(parts)

    # -- mutation -----------------------------------------------------------

    def insertion_parent(self) -> Element | None:
        """Element that receives a node inserted after ``extract_contents()``."""
        start_node, end_node = self.start.node, self.end.node
        if start_node is end_node and isinstance(start_node, Text):
            return start_node.parent
        if start_node.is_inclusive_ancestor_of(end_node):
            return start_node if isinstance(start_node, Element) else None
        common = self.common_ancestor
        return common if isinstance(common, Element) else None

    def extract_contents(self) -> list[Node]:
        """Move the spanned content out of the tree and return it.

        Partially selected elements stay in place and are shallow-cloned into
        the result to hold their selected part.  Afterwards the span is
        collapsed at the point where the content used to be.
        """
        self.validate()
        fragment: list[Node] = []
        if self.collapsed:
            return fragment

        start_node, start_offset = self.start.node, self.start.offset
        end_node, end_offset = self.end.node, self.end.offset

        if start_node is end_node and isinstance(start_node, Text):
            data = start_node.data
            fragment.append(Text(data[start_offset:end_offset]))
            start_node.data = data[:start_offset] + data[end_offset:]
            self.end = self.start
            return fragment

        common = self.common_ancestor
        assert isinstance(common, Element)

        first_partial: Node | None = None
        if not start_node.is_inclusive_ancestor_of(end_node):
            first_partial = next(
                c for c in common.children if c.is_inclusive_ancestor_of(start_node)
            )
        last_partial: Node | None = None
        if not end_node.is_inclusive_ancestor_of(start_node):
            last_partial = next(
                c for c in common.children if c.is_inclusive_ancestor_of(end_node)
            )
        contained = [c for c in common.children if self._contains(c)]

        if start_node.is_inclusive_ancestor_of(end_node):
            new_point = Boundary(start_node, start_offset)
        else:
            reference = start_node
            while reference.parent is not None and not (
                reference.parent.is_inclusive_ancestor_of(end_node)
            ):
                reference = reference.parent
            assert reference.parent is not None
            new_point = Boundary(reference.parent, reference.index + 1)

        if isinstance(first_partial, Text):
            assert isinstance(start_node, Text)
            fragment.append(Text(start_node.data[start_offset:]))
            start_node.data = start_node.data[:start_offset]
        elif first_partial is not None:
            assert isinstance(first_partial, Element)
            holder = first_partial.clone()
            fragment.append(holder)
            inner = Span(
                Boundary(start_node, start_offset),
                Boundary(first_partial, first_partial.length),
            )
            for node in inner.extract_contents():
                holder.append(node)

        for child in contained:
            child.remove()
            fragment.append(child)

        if isinstance(last_partial, Text):
            assert isinstance(end_node, Text)
            fragment.append(Text(end_node.data[:end_offset]))
            end_node.data = end_node.data[end_offset:]
        elif last_partial is not None:
            assert isinstance(last_partial, Element)
            holder = last_partial.clone()
            fragment.append(holder)
            inner = Span(Boundary(last_partial, 0), Boundary(end_node, end_offset))
            for node in inner.extract_contents():
                holder.append(node)

        self.start = self.end = new_point
        return fragment

    def insert_node(self, node: Node) -> None:
        """Insert *node* at the start boundary, splitting text if needed."""
        start_node, start_offset = self.start.node, self.start.offset
        if isinstance(start_node, Text):
            parent = start_node.parent
            if parent is None:
                msg = "Cannot insert next to a detached text node"
                raise RangeError(msg)
        else:
            assert isinstance(start_node, Element)
            parent = start_node
        if isinstance(node, Element) and not _accepts_elements(parent):
            msg = f"<{parent.tag}> cannot contain a <{node.tag}> element"
            raise RangeError(msg)

        if isinstance(start_node, Text):
            reference: Node | None = start_node.split(start_offset)
        else:
            children = parent.children
            reference = children[start_offset] if start_offset < len(children) else None
        parent.insert_before(node, reference)
        if self.collapsed:
            self.end = Boundary(parent, node.index + 1)

    def surround_contents(self, new_parent: Element) -> None:
        """Move the spanned content into *new_parent*, placed where it was.

        Fails when the span only partly covers an element, since that element
        would have to be split.
        """
        self.validate()
        ends = (self.start.node, self.end.node)
        for node, other in (ends, ends[::-1]):
            partial: Node | None = node
            while partial is not None and not partial.is_inclusive_ancestor_of(other):
                if not isinstance(partial, Text):
                    msg = f"Span partially selects {partial!r}"
                    raise RangeError(msg)
                partial = partial.parent
        parent = self.insertion_parent()
        if parent is None or not _accepts_elements(parent):
            msg = "Span position cannot hold an element"
            raise RangeError(msg)

        for child in list(new_parent.children):
            child.remove()
        fragment = self.extract_contents()
        self.insert_node(new_parent)
        for node in fragment:
            new_parent.append(node)
        assert new_parent.parent is not None
        index = new_parent.index
        self.start = Boundary(new_parent.parent, index)
        self.end = Boundary(new_parent.parent, index + 1)
