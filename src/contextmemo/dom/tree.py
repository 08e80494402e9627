"""Mutable document tree used by the annotation core.

selectolax parses HTML quickly but does not expose text nodes as mutable,
splittable objects, so the parsed tree is copied into a small node model
(``Element`` / ``Text``) that supports the edits highlighting needs:
splitting text, moving children, replacing and normalizing.

The copy walks the Lexbor tree via ``child``/``next`` iteration, the same
way the text extraction in the input pipeline does, so text nodes come out
in document order with their raw (uncollapsed) content.
"""

from __future__ import annotations

import html as html_module
import logging
from typing import TYPE_CHECKING, Any

from selectolax.lexbor import LexborHTMLParser

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)

# Text inside these elements is never part of the visible text stream.
SKIP_TEXT_TAGS = frozenset(("script", "style", "noscript", "template"))

# Elements serialized without escaping their text content.
RAW_TEXT_TAGS = frozenset(("script", "style"))

VOID_TAGS = frozenset(
    (
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    )
)


class Node:
    """Base class for tree nodes."""

    __slots__ = ("parent",)

    def __init__(self) -> None:
        self.parent: Element | None = None

    @property
    def length(self) -> int:
        """Boundary length: characters for text, children for elements."""
        raise NotImplementedError

    @property
    def index(self) -> int:
        """Position of this node among its parent's children."""
        if self.parent is None:
            msg = "Detached node has no index"
            raise ValueError(msg)
        for i, child in enumerate(self.parent.children):
            if child is self:
                return i
        msg = "Node is not among its parent's children"
        raise ValueError(msg)

    @property
    def root(self) -> Node:
        node: Node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def previous_sibling(self) -> Node | None:
        if self.parent is None:
            return None
        i = self.index
        return self.parent.children[i - 1] if i > 0 else None

    @property
    def next_sibling(self) -> Node | None:
        if self.parent is None:
            return None
        siblings = self.parent.children
        i = self.index
        return siblings[i + 1] if i + 1 < len(siblings) else None

    def ancestors(self) -> Iterator[Element]:
        """Yield ancestors from the parent up to the root."""
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def is_inclusive_ancestor_of(self, other: Node) -> bool:
        node: Node | None = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def path(self) -> list[int]:
        """Child indices from the root down to this node."""
        indices: list[int] = []
        node: Node = self
        while node.parent is not None:
            indices.append(node.index)
            node = node.parent
        indices.reverse()
        return indices

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.remove_child(self)

    def text_content(self) -> str:
        raise NotImplementedError

    def clone(self, *, deep: bool = False) -> Node:
        raise NotImplementedError


class Text(Node):
    """A run of character data."""

    __slots__ = ("data",)

    def __init__(self, data: str = "") -> None:
        super().__init__()
        self.data = data

    @property
    def length(self) -> int:
        return len(self.data)

    def text_content(self) -> str:
        return self.data

    def split(self, offset: int) -> Text:
        """Split at *offset*; this node keeps the head, the tail follows it."""
        if not 0 <= offset <= len(self.data):
            msg = f"Split offset {offset} outside text of length {len(self.data)}"
            raise ValueError(msg)
        tail = Text(self.data[offset:])
        self.data = self.data[:offset]
        if self.parent is not None:
            self.parent.insert(self.index + 1, tail)
        return tail

    def clone(self, *, deep: bool = False) -> Text:  # noqa: ARG002
        return Text(self.data)

    def __repr__(self) -> str:
        return f"Text({self.data!r})"


class Element(Node):
    """An element with a tag, attributes and ordered children."""

    __slots__ = ("attrs", "children", "tag")

    def __init__(
        self,
        tag: str,
        attrs: dict[str, str | None] | None = None,
        children: list[Node] | None = None,
    ) -> None:
        super().__init__()
        self.tag = tag.lower()
        self.attrs: dict[str, str | None] = dict(attrs or {})
        self.children: list[Node] = []
        for child in children or ():
            self.append(child)

    @property
    def length(self) -> int:
        return len(self.children)

    @property
    def id(self) -> str:
        return self.attrs.get("id") or ""

    @property
    def classes(self) -> list[str]:
        return (self.attrs.get("class") or "").split()

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attrs.get(name, default)

    # -- mutation -----------------------------------------------------------

    def insert(self, index: int, node: Node) -> Node:
        """Insert *node* at *index*, detaching it from any previous parent."""
        if node.is_inclusive_ancestor_of(self):
            msg = "Cannot insert a node into itself or its descendants"
            raise ValueError(msg)
        if node.parent is self and node.index < index:
            index -= 1
        node.remove()
        node.parent = self
        self.children.insert(index, node)
        return node

    def append(self, node: Node) -> Node:
        return self.insert(len(self.children), node)

    def insert_before(self, node: Node, reference: Node | None) -> Node:
        if reference is None:
            return self.append(node)
        if reference.parent is not self:
            msg = "Reference node is not a child of this element"
            raise ValueError(msg)
        if reference is node:
            return node
        node.remove()
        return self.insert(reference.index, node)

    def remove_child(self, node: Node) -> Node:
        del self.children[node.index]
        node.parent = None
        return node

    def replace_child(self, new: Node, old: Node) -> Node:
        if old.parent is not self:
            msg = "Node to replace is not a child of this element"
            raise ValueError(msg)
        new.remove()
        index = old.index
        self.remove_child(old)
        self.insert(index, new)
        return old

    def normalize(self) -> None:
        """Merge adjacent text nodes and drop empty ones, recursively."""
        i = 0
        while i < len(self.children):
            child = self.children[i]
            if isinstance(child, Text):
                while i + 1 < len(self.children) and isinstance(
                    self.children[i + 1], Text
                ):
                    following = self.children[i + 1]
                    child.data += following.text_content()
                    self.remove_child(following)
                if not child.data:
                    self.remove_child(child)
                    continue
            elif isinstance(child, Element):
                child.normalize()
            i += 1

    # -- traversal ------------------------------------------------------------

    def iter(self) -> Iterator[Node]:
        """Depth-first, document-order traversal including this element."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            if isinstance(node, Element):
                stack.extend(reversed(node.children))

    def iter_elements(self) -> Iterator[Element]:
        for node in self.iter():
            if isinstance(node, Element):
                yield node

    def iter_text(self) -> Iterator[Text]:
        for node in self.iter():
            if isinstance(node, Text):
                yield node

    def find(self, predicate: Callable[[Element], bool]) -> Element | None:
        """First element in document order (this one included) matching."""
        for element in self.iter_elements():
            if predicate(element):
                return element
        return None

    def text_content(self) -> str:
        return "".join(node.data for node in self.iter_text())

    def clone(self, *, deep: bool = False) -> Element:
        copy = Element(self.tag, self.attrs)
        if deep:
            for child in self.children:
                copy.append(child.clone(deep=True))
        return copy

    def __repr__(self) -> str:
        attrs = "".join(f" {k}={v!r}" for k, v in self.attrs.items())
        return f"<Element {self.tag}{attrs} children={len(self.children)}>"


class Document:
    """A parsed HTML document rooted at its ``<html>`` element."""

    __slots__ = ("root",)

    def __init__(self, root: Element) -> None:
        self.root = root

    @property
    def body(self) -> Element:
        for child in self.root.children:
            if isinstance(child, Element) and child.tag == "body":
                return child
        return self.root

    def find(self, predicate: Callable[[Element], bool]) -> Element | None:
        return self.root.find(predicate)

    def text_content(self) -> str:
        return self.root.text_content()

    def to_html(self) -> str:
        return "<!DOCTYPE html>" + serialize(self.root)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _copy_node(node: Any) -> Node | None:
    """Copy a Lexbor node (and its subtree) into the tree model."""
    tag = node.tag

    # Text node: selectolax uses "-text" as the tag
    if tag == "-text":
        return Text(node.text_content or "")

    # Comments ("_comment"), doctype and other non-element nodes
    if not tag or tag[0] in "-_!":
        return None

    attrs = {
        str(k): (None if v is None else str(v)) for k, v in node.attributes.items()
    }
    element = Element(tag, attrs)
    child = node.child
    while child is not None:
        copied = _copy_node(child)
        if copied is not None:
            element.append(copied)
        child = child.next
    return element


def parse_html(html: str) -> Document:
    """Parse HTML (full document or fragment) into a ``Document``."""
    tree = LexborHTMLParser(html or "")
    root = tree.root
    copied = _copy_node(root) if root is not None else None
    if not isinstance(copied, Element):
        logger.debug("Parser produced no root element; using an empty document")
        copied = Element("html", children=[Element("head"), Element("body")])
    return Document(copied)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _serialize_into(node: Node, parts: list[str], *, raw_text: bool) -> None:
    if isinstance(node, Text):
        text = node.data if raw_text else html_module.escape(node.data, quote=False)
        parts.append(text)
        return
    assert isinstance(node, Element)
    parts.append(f"<{node.tag}")
    for name, value in node.attrs.items():
        if value is None:
            parts.append(f" {name}")
        else:
            parts.append(f' {name}="{html_module.escape(value, quote=True)}"')
    parts.append(">")
    if node.tag in VOID_TAGS:
        return
    child_raw = node.tag in RAW_TEXT_TAGS
    for child in node.children:
        _serialize_into(child, parts, raw_text=child_raw)
    parts.append(f"</{node.tag}>")


def serialize(node: Node) -> str:
    """Serialize a node and its subtree to HTML."""
    parts: list[str] = []
    _serialize_into(node, parts, raw_text=False)
    return "".join(parts)


def inner_html(element: Element) -> str:
    return "".join(serialize(child) for child in element.children)
