"""Highlight wrappers: visible marking of resolved spans.

A wrapper is an element carrying the configured class and the note
identifier attribute, e.g.
``<span class="web-annotator-highlight" data-note-id="...">``.  The marker
keeps an identifier -> wrapper registry for one document, built once from
the wrappers already present, so ``wrap`` is idempotent without scanning the
tree.

Overlapping highlights:
    Wrapping a span that only partly covers an existing wrapper splits it,
    since the covered part moves into the new wrapper inside a shallow copy.
    Such copies are registered as fragments of their note and removed with
    it.  Wrappers found at construction are deduplicated (first one wins),
    so a split highlight saved to HTML reloads with only its first part
    marked.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from contextmemo.config import get_settings
from contextmemo.dom.range import RangeError
from contextmemo.dom.tree import RAW_TEXT_TAGS, VOID_TAGS, Element, Node, Text
from contextmemo.dom.view import WrapperFilter
from contextmemo.errors import HighlightFailedError

if TYPE_CHECKING:
    from contextmemo.config import Settings
    from contextmemo.dom.range import Span
    from contextmemo.dom.tree import Document

logger = logging.getLogger(__name__)


def _replace_with_children(element: Element) -> None:
    """Remove *element*, leaving its content where it was.

    A wrapper holding only text becomes one text node. A wrapper that holds
    elements, such as inline markup or a nested highlight, has its children
    lifted into its place instead, so that markup survives. Either way the
    visible text is unchanged and adjacent text nodes are merged.
    """
    parent = element.parent
    if parent is None:
        return
    if all(isinstance(child, Text) for child in element.children):
        parent.replace_child(Text(element.text_content()), element)
    else:
        index = element.index
        for child in list(element.children):
            parent.insert(index, child)
            index += 1
        element.remove()
    parent.normalize()


def _drop_empty_neighbours(node: Node) -> None:
    for sibling in (node.previous_sibling, node.next_sibling):
        if isinstance(sibling, Text) and not sibling.data:
            sibling.remove()


class SpanMarker:
    """Wraps spans in highlight elements and removes them again."""

    def __init__(self, document: Document, *, settings: Settings | None = None) -> None:
        self.document = document
        settings = settings or get_settings()
        self._config = settings.marker
        self._wrappers = WrapperFilter.from_settings(settings)
        # First element is the wrapper itself, the rest are split-off copies
        self._registry: dict[str, list[Element]] = {}
        self._index_existing()

    def _index_existing(self) -> None:
        duplicates: list[Element] = []
        for element in self.document.root.iter_elements():
            if not self.is_wrapper(element):
                continue
            identifier = self._identifier_of(element)
            if identifier in self._registry:
                duplicates.append(element)
            else:
                self._registry[identifier] = [element]
        for element in duplicates:
            logger.warning(
                "Removing duplicate highlight for note %r",
                self._identifier_of(element),
            )
            _replace_with_children(element)
        if self._registry:
            logger.debug("Found %d existing highlights", len(self._registry))

    def _identifier_of(self, element: Element) -> str:
        return element.get(self._config.id_attribute) or ""

    def _attached(self, element: Element) -> bool:
        return element.root is self.document.root

    # -- queries ----------------------------------------------------------------

    def is_wrapper(self, node: Node | None) -> bool:
        return self._wrappers.is_wrapper(node)

    def find_wrapper(self, identifier: str) -> Element | None:
        """The live wrapper for *identifier*, or None."""
        elements = self._registry.get(identifier)
        if not elements:
            return None
        if not self._attached(elements[0]):
            # Detached by some outside edit; treat the note as unmarked
            del self._registry[identifier]
            return None
        return elements[0]

    def identifiers(self) -> list[str]:
        return [key for key in list(self._registry) if self.find_wrapper(key)]

    # -- mutation -----------------------------------------------------------------

    def _make_wrapper(self, identifier: str) -> Element:
        attrs: dict[str, str | None] = {
            "class": self._config.class_name,
            self._config.id_attribute: identifier,
        }
        if self._config.style:
            attrs["style"] = self._config.style
        return Element(self._config.tag, attrs)

    def _check(self, span: Span, identifier: str) -> None:
        try:
            span.validate()
        except RangeError as exc:
            raise HighlightFailedError(identifier, str(exc)) from exc
        if span.collapsed:
            raise HighlightFailedError(identifier, "span is empty")
        if span.start.node.root is not self.document.root:
            raise HighlightFailedError(identifier, "span is not in this document")

    @staticmethod
    def _wrap_extracted(span: Span, wrapper: Element) -> None:
        parent = span.insertion_parent()
        if parent is None or parent.tag in VOID_TAGS or parent.tag in RAW_TEXT_TAGS:
            msg = "Span position cannot hold an element"
            raise RangeError(msg)
        fragment = span.extract_contents()
        span.insert_node(wrapper)
        for node in fragment:
            wrapper.append(node)

    def _register_fragments(self, wrapper: Element) -> None:
        for element in wrapper.iter_elements():
            if element is wrapper or not self.is_wrapper(element):
                continue
            known = self._registry.get(self._identifier_of(element))
            if known is not None and not any(el is element for el in known):
                known.append(element)

    def wrap(self, span: Span, identifier: str) -> Element:
        """Wrap *span* in a highlight for *identifier*.

        Returns the existing wrapper unchanged when *identifier* is already
        highlighted.  The span is checked before the tree is touched, so a
        failure leaves the document as it was.

        Raises:
            HighlightFailedError: If the span cannot be wrapped.
        """
        existing = self.find_wrapper(identifier)
        if existing is not None:
            logger.debug("Note %r is already highlighted", identifier)
            return existing
        self._check(span, identifier)

        wrapper = self._make_wrapper(identifier)
        try:
            self._wrap_extracted(span, wrapper)
        except RangeError as exc:
            logger.debug(
                "Structural wrap of %r failed (%s), surrounding", identifier, exc
            )
            try:
                span.surround_contents(wrapper)
            except RangeError as surround_exc:
                reason = str(surround_exc)
                raise HighlightFailedError(identifier, reason) from surround_exc

        _drop_empty_neighbours(wrapper)
        wrapper.normalize()
        self._registry[identifier] = [wrapper]
        self._register_fragments(wrapper)
        logger.debug("Highlighted note %r", identifier)
        return wrapper

    def unwrap(self, identifier: str) -> bool:
        """Remove the highlight for *identifier*; False when there is none.

        Inline elements inside the highlight are kept; only the wrappers go.
        """
        registered = self._registry.pop(identifier, [])
        elements = [el for el in registered if self._attached(el)]
        if not elements:
            logger.debug("No highlight to remove for note %r", identifier)
            return False
        for element in elements:
            _replace_with_children(element)
        logger.debug("Removed highlight for note %r", identifier)
        return True
