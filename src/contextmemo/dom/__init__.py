"""Document tree, spans and the clean view used for measuring text."""

from contextmemo.dom.range import Boundary, RangeError, Span, compare_points
from contextmemo.dom.tree import (
    Document,
    Element,
    Node,
    Text,
    inner_html,
    parse_html,
    serialize,
)
from contextmemo.dom.view import TextMap, WrapperFilter, select_text

__all__ = [
    "Boundary",
    "Document",
    "Element",
    "Node",
    "RangeError",
    "Span",
    "Text",
    "TextMap",
    "WrapperFilter",
    "compare_points",
    "inner_html",
    "parse_html",
    "select_text",
    "serialize",
]
