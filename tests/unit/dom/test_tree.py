"""Tests for contextmemo.dom.tree: parsing, serialization and node edits."""

from __future__ import annotations

import pytest

from contextmemo.dom import Element, Text, inner_html, parse_html, serialize
from tests.helpers.dom import element, text_node


class TestParseHtml:
    """HTML is copied from selectolax into the mutable node model."""

    def test_fragment_is_placed_in_html_head_body(self) -> None:
        """A bare fragment ends up inside <body> of a full document."""
        doc = parse_html("<p>Hi</p>")
        assert doc.root.tag == "html"
        assert [child.tag for child in doc.root.children] == ["head", "body"]
        assert inner_html(doc.body) == "<p>Hi</p>"

    def test_attributes_and_classes(self) -> None:
        doc = parse_html('<div id="x" class="a  b" hidden>t</div>')
        div = element(doc.root, "div")
        assert div.id == "x"
        assert div.classes == ["a", "b"]
        assert "hidden" in div.attrs

    def test_comments_are_not_modelled(self) -> None:
        doc = parse_html("<p>a<!-- note -->b</p>")
        p = element(doc.root, "p")
        assert [node.text_content() for node in p.children] == ["a", "b"]

    def test_empty_input_still_has_a_body(self) -> None:
        doc = parse_html("")
        assert doc.body.tag == "body"
        assert doc.text_content() == ""

    def test_entities_are_decoded(self) -> None:
        doc = parse_html("<p>1 &lt; 2 &amp;&amp; 3</p>")
        assert doc.body.text_content() == "1 < 2 && 3"


class TestSerialize:
    """Serialization back to HTML."""

    def test_escapes_text_and_attribute_values(self) -> None:
        p = Element("p", {"title": 'say "hi"'}, [Text("1 < 2 & 3")])
        assert serialize(p) == '<p title="say &quot;hi&quot;">1 &lt; 2 &amp; 3</p>'

    def test_script_text_is_raw(self) -> None:
        script = Element("script", children=[Text("if (a < b) {}")])
        assert serialize(script) == "<script>if (a < b) {}</script>"

    def test_void_elements_have_no_end_tag(self) -> None:
        p = Element("p", children=[Text("a"), Element("br"), Text("b")])
        assert serialize(p) == "<p>a<br>b</p>"

    def test_valueless_attribute(self) -> None:
        assert serialize(Element("input", {"disabled": None})) == "<input disabled>"

    def test_document_round_trip(self) -> None:
        """Parse then serialize keeps structure and text."""
        html = '<div id="a"><p class="x">Hello <b>bold</b> world</p></div>'
        doc = parse_html(html)
        assert inner_html(doc.body) == html
        assert doc.to_html().startswith("<!DOCTYPE html><html>")


class TestNodeEdits:
    """Structural edits on Element and Text."""

    def test_text_split_inserts_tail_after_head(self) -> None:
        head = Text("Hello")
        p = Element("p", children=[head])
        tail = head.split(2)
        assert head.data == "He"
        assert tail.data == "llo"
        assert p.children == [head, tail]

    def test_text_split_rejects_bad_offset(self) -> None:
        with pytest.raises(ValueError, match="outside text"):
            Text("abc").split(4)

    def test_normalize_merges_and_drops_empty_text(self) -> None:
        inner = Element("b", children=[Text(""), Text("c")])
        p = Element("p", children=[Text("a"), Text(""), Text("b"), inner])
        p.normalize()
        assert len(p.children) == 2
        assert p.children[0].text_content() == "ab"
        assert len(inner.children) == 1

    def test_append_moves_node_between_parents(self) -> None:
        node = Text("x")
        first = Element("p", children=[node])
        second = Element("p")
        second.append(node)
        assert first.children == []
        assert node.parent is second

    def test_insert_within_same_parent_keeps_order(self) -> None:
        a, b, c = Text("a"), Text("b"), Text("c")
        p = Element("p", children=[a, b, c])
        p.insert(3, a)
        assert [n.text_content() for n in p.children] == ["b", "c", "a"]

    def test_insert_into_own_descendant_is_rejected(self) -> None:
        inner = Element("p")
        outer = Element("div", children=[inner])
        with pytest.raises(ValueError, match="itself"):
            inner.append(outer)

    def test_replace_child(self) -> None:
        old = Element("span", children=[Text("x")])
        p = Element("p", children=[Text("a"), old, Text("b")])
        p.replace_child(Text("x"), old)
        assert old.parent is None
        assert p.text_content() == "axb"
        assert len(p.children) == 3

    def test_siblings_and_index(self) -> None:
        a, b = Text("a"), Element("br")
        p = Element("p", children=[a, b])
        assert b.index == 1
        assert a.next_sibling is b
        assert b.previous_sibling is a
        assert a.previous_sibling is None
        with pytest.raises(ValueError, match="Detached"):
            _ = Text("lone").index


class TestTraversal:
    """Document-order iteration and ancestry."""

    def test_iter_is_document_order(self) -> None:
        doc = parse_html("<div><p>a<b>b</b></p><p>c</p></div>")
        assert [n.data for n in doc.body.iter_text()] == ["a", "b", "c"]

    def test_path_orders_nodes(self) -> None:
        doc = parse_html("<p>a<b>b</b></p><p>c</p>")
        a, b, c = (text_node(doc.body, t) for t in "abc")
        assert a.path() < b.path() < c.path()

    def test_ancestry(self) -> None:
        doc = parse_html("<div><p>text</p></div>")
        node = text_node(doc.body, "text")
        div = element(doc.body, "div")
        assert div.is_inclusive_ancestor_of(node)
        assert not node.is_inclusive_ancestor_of(div)
        assert node.root is doc.root
        assert [el.tag for el in node.ancestors()] == ["p", "div", "body", "html"]

    def test_clone_shallow_and_deep(self) -> None:
        bold = Element("b", children=[Text("b")])
        p = Element("p", {"class": "x"}, [Text("a"), bold])
        shallow = p.clone()
        deep = p.clone(deep=True)
        assert shallow.attrs == {"class": "x"}
        assert shallow.children == []
        assert serialize(deep) == serialize(p)
        assert deep.children[0] is not p.children[0]
