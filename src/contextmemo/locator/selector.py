"""Container paths: CSS-style structural addresses for anchor elements.

A path is a chain of compound selectors joined by the child combinator,
root first, e.g. ``html > body > div.article:nth-of-type(2) > p``.  Building
stops early at an element with an id (``div#main > p``).  Evaluation has
``querySelector`` semantics: the first element in document order whose
ancestor chain matches.

Only the grammar this module produces is accepted: a tag name, then an
optional ``#id`` and ``.class`` parts, then an optional
``:nth-of-type(k)``.  Both building and evaluation go through the clean
view, so highlight wrappers neither appear in paths nor shift ranks.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from contextmemo.dom.tree import Element
    from contextmemo.dom.view import WrapperFilter

SEPARATOR = " > "

# Path building ends at these elements even without an id.
_STOP_TAGS = frozenset(("body", "html"))

_NTH_OF_TYPE = re.compile(r"nth-of-type\((\d+)\)")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_IDENT_STOP = frozenset("#.:>()")


class PathSyntaxError(ValueError):
    """A container path does not follow the path grammar."""


def css_escape(value: str) -> str:
    """Escape an identifier the way ``CSS.escape`` does."""
    out: list[str] = []
    for i, ch in enumerate(value):
        code = ord(ch)
        if code == 0:
            out.append("�")
        elif (
            0x01 <= code <= 0x1F
            or code == 0x7F
            or (i == 0 and "0" <= ch <= "9")
            or (i == 1 and "0" <= ch <= "9" and value[0] == "-")
        ):
            out.append(f"\\{code:x} ")
        elif i == 0 and ch == "-" and len(value) == 1:
            out.append("\\-")
        elif code >= 0x80 or ch in "-_" or (ch.isascii() and ch.isalnum()):
            out.append(ch)
        else:
            out.append("\\" + ch)
    return "".join(out)


@dataclass(frozen=True, slots=True)
class PathStep:
    """One compound selector of a container path."""

    tag: str
    id: str = ""
    classes: tuple[str, ...] = ()
    nth_of_type: int | None = None

    def render(self) -> str:
        text = self.tag
        if self.id:
            text += "#" + css_escape(self.id)
        text += "".join("." + css_escape(name) for name in self.classes)
        if self.nth_of_type is not None:
            text += f":nth-of-type({self.nth_of_type})"
        return text

    def matches(self, element: Element, wrappers: WrapperFilter) -> bool:
        if element.tag != self.tag:
            return False
        if self.id and element.id != self.id:
            return False
        element_classes = element.classes
        if any(name not in element_classes for name in self.classes):
            return False
        if self.nth_of_type is not None:
            return _rank(element, wrappers) == self.nth_of_type
        return True


def _rank(element: Element, wrappers: WrapperFilter) -> int:
    """1-based position of *element* among its same-tag clean-view siblings."""
    for rank, sibling in enumerate(wrappers.same_tag_siblings(element), start=1):
        if sibling is element:
            return rank
    return 1


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


def _step_for(
    element: Element, wrappers: WrapperFilter, internal_class_marker: str
) -> PathStep:
    if element.id:
        return PathStep(element.tag, id=element.id)
    classes = tuple(
        name for name in element.classes if internal_class_marker not in name
    )
    nth: int | None = None
    if len(wrappers.same_tag_siblings(element)) > 1:
        nth = _rank(element, wrappers)
    return PathStep(element.tag, classes=classes, nth_of_type=nth)


def build_container_path(
    element: Element,
    wrappers: WrapperFilter,
    *,
    internal_class_marker: str,
) -> str:
    """Build the path for *element*, from the root (or nearest id) down."""
    if element.tag in _STOP_TAGS:
        return element.tag
    steps: list[PathStep] = []
    current: Element | None = element
    while current is not None:
        step = _step_for(current, wrappers, internal_class_marker)
        steps.append(step)
        if step.id or current.tag in _STOP_TAGS:
            break
        current = wrappers.parent(current)
    return SEPARATOR.join(step.render() for step in reversed(steps))


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class _Reader:
    __slots__ = ("pos", "text")

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def error(self, message: str) -> PathSyntaxError:
        return PathSyntaxError(f"{message} at position {self.pos} in {self.text!r}")

    def ident(self) -> str:
        chars: list[str] = []
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == "\\":
                self.pos += 1
                if self.pos >= len(text):
                    raise self.error("Dangling escape")
                digits = ""
                while (
                    self.pos < len(text)
                    and len(digits) < 6
                    and text[self.pos] in _HEX_DIGITS
                ):
                    digits += text[self.pos]
                    self.pos += 1
                if digits:
                    code = int(digits, 16)
                    chars.append(chr(code) if 0 < code <= 0x10FFFF else "�")
                    if self.pos < len(text) and text[self.pos].isspace():
                        self.pos += 1
                else:
                    chars.append(text[self.pos])
                    self.pos += 1
            elif ch in _IDENT_STOP or ch.isspace():
                break
            else:
                chars.append(ch)
                self.pos += 1
        return "".join(chars)


def _parse_step(reader: _Reader) -> PathStep:
    tag = reader.ident().lower()
    if not tag:
        raise reader.error("Expected a tag name")
    element_id = ""
    classes: list[str] = []
    nth: int | None = None
    while True:
        ch = reader.peek()
        if ch == "#":
            reader.pos += 1
            element_id = reader.ident()
            if not element_id:
                raise reader.error("Expected an id")
        elif ch == ".":
            reader.pos += 1
            name = reader.ident()
            if not name:
                raise reader.error("Expected a class name")
            classes.append(name)
        elif ch == ":":
            match = _NTH_OF_TYPE.match(reader.text, reader.pos + 1)
            if match is None or int(match.group(1)) < 1:
                raise reader.error("Unsupported pseudo-class")
            nth = int(match.group(1))
            reader.pos = match.end()
        else:
            break
    return PathStep(tag, id=element_id, classes=tuple(classes), nth_of_type=nth)


def parse_path(path: str) -> list[PathStep]:
    """Parse a container path into its steps, root first."""
    reader = _Reader(path.strip())
    steps: list[PathStep] = []
    expect_step = True
    while True:
        reader.skip_whitespace()
        if reader.at_end:
            break
        if expect_step:
            steps.append(_parse_step(reader))
            expect_step = False
        elif reader.peek() == ">":
            reader.pos += 1
            expect_step = True
        else:
            raise reader.error("Expected '>'")
    if expect_step:
        raise reader.error("Expected a path step")
    return steps


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def _matches_chain(
    element: Element, steps: list[PathStep], wrappers: WrapperFilter
) -> bool:
    node: Element | None = element
    for step in reversed(steps):
        if node is None or not step.matches(node, wrappers):
            return False
        node = wrappers.parent(node)
    return True


def query_path(root: Element, path: str, wrappers: WrapperFilter) -> Element | None:
    """First element under *root* (inclusive) matching *path*.

    Raises:
        PathSyntaxError: If *path* is malformed.
    """
    steps = parse_path(path)
    for element in root.iter_elements():
        if wrappers.is_wrapper(element):
            continue
        if _matches_chain(element, steps, wrappers):
            return element
    return None
