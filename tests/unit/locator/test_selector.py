"""Tests for contextmemo.locator.selector: building and evaluating paths."""

from __future__ import annotations

import pytest

from contextmemo.dom import WrapperFilter, parse_html
from contextmemo.locator import (
    PathStep,
    PathSyntaxError,
    build_container_path,
    css_escape,
    parse_path,
    query_path,
)
from tests.helpers.dom import element

FILTER = WrapperFilter("web-annotator-highlight", "data-note-id")


def _path(el) -> str:
    return build_container_path(el, FILTER, internal_class_marker="web-annotator")


class TestCssEscape:
    """Identifiers are escaped the way CSS.escape does it."""

    @pytest.mark.parametrize(
        ("raw", "escaped"),
        [
            ("main", "main"),
            ("foo_bar-baz", "foo_bar-baz"),
            ("a b", "a\\ b"),
            ("a.b", "a\\.b"),
            ("1abc", "\\31 abc"),
            ("-1", "-\\31 "),
            ("-", "\\-"),
            ("café", "café"),
        ],
    )
    def test_escape(self, raw: str, escaped: str) -> None:
        assert css_escape(raw) == escaped


class TestBuildContainerPath:
    """Paths run from the nearest id (or body) down to the container."""

    def test_id_ends_the_walk(self) -> None:
        doc = parse_html('<div id="a"><p>Hello world</p></div>')
        assert _path(element(doc.body, "p")) == "div#a > p"

    def test_element_with_id_is_its_own_path(self) -> None:
        doc = parse_html('<section id="intro">x</section>')
        assert _path(element(doc.body, "section")) == "section#intro"

    def test_classes_and_nth_of_type(self) -> None:
        doc = parse_html('<div class="x web-annotator-root"><p>a</p><p>b</p></div>')
        second = element(doc.body, "div").children[1]
        assert _path(second) == "body > div.x > p:nth-of-type(2)"

    def test_single_child_has_no_nth(self) -> None:
        doc = parse_html("<article><p>only</p><ul><li>x</li></ul></article>")
        li = element(doc.body, "li")
        assert _path(li) == "body > article > ul > li"

    def test_body_and_html(self) -> None:
        doc = parse_html('<body class="home"><p>x</p></body>')
        assert _path(doc.body) == "body"
        assert _path(doc.root) == "html"
        assert _path(element(doc.body, "p")) == "body.home > p"

    def test_id_is_escaped(self) -> None:
        doc = parse_html('<div id="1st"><p>x</p></div>')
        assert _path(element(doc.body, "p")) == "div#\\31 st > p"

    def test_wrappers_do_not_change_the_path(self) -> None:
        """A wrapped sibling is neither a step nor a same-tag sibling."""
        plain = parse_html("<div><span>a</span><p>x</p></div>")
        wrapped = parse_html(
            '<div><span>a</span><span class="web-annotator-highlight" '
            'data-note-id="n"><p>x</p></span></div>'
        )
        assert _path(element(wrapped.body, "p")) == _path(element(plain.body, "p"))
        assert _path(element(wrapped.body, "p")) == "body > div > p"


class TestParsePath:
    """The path grammar is a chain of compound selectors."""

    def test_parses_steps(self) -> None:
        steps = parse_path("body > div.x.y > p:nth-of-type(3)")
        assert steps == [
            PathStep("body"),
            PathStep("div", classes=("x", "y")),
            PathStep("p", nth_of_type=3),
        ]

    def test_unescapes_identifiers(self) -> None:
        steps = parse_path("div#\\31 st > p.a\\.b")
        assert steps == [PathStep("div", id="1st"), PathStep("p", classes=("a.b",))]

    def test_render_matches_build_format(self) -> None:
        step = PathStep("p", classes=("a.b",), nth_of_type=2)
        assert step.render() == "p.a\\.b:nth-of-type(2)"
        assert parse_path(step.render()) == [step]

    @pytest.mark.parametrize(
        "path",
        ["", "   ", "div >", "> p", "div p", "div:hover", "p:nth-of-type(0)", "div#"],
    )
    def test_rejects_malformed_paths(self, path: str) -> None:
        with pytest.raises(PathSyntaxError):
            parse_path(path)


class TestQueryPath:
    """Evaluation has querySelector semantics over the clean view."""

    def test_finds_first_match_in_document_order(self) -> None:
        doc = parse_html("<div><p>one</p></div><div><p>two</p></div>")
        found = query_path(doc.root, "div > p", FILTER)
        assert found is not None
        assert found.text_content() == "one"

    def test_nth_of_type(self) -> None:
        doc = parse_html("<div><p>one</p><p>two</p></div>")
        found = query_path(doc.root, "div > p:nth-of-type(2)", FILTER)
        assert found is not None
        assert found.text_content() == "two"

    def test_id_anywhere_in_document(self) -> None:
        doc = parse_html('<main><div><div id="deep"><p>x</p></div></div></main>')
        found = query_path(doc.root, "div#deep > p", FILTER)
        assert found is element(doc.body, "p")

    def test_no_match(self) -> None:
        doc = parse_html("<div><p>x</p></div>")
        assert query_path(doc.root, "div#missing > p", FILTER) is None

    def test_child_combinator_sees_through_wrappers(self) -> None:
        doc = parse_html(
            '<div id="a"><span class="web-annotator-highlight" data-note-id="n">'
            "<p>x</p></span><p>y</p></div>"
        )
        found = query_path(doc.root, "div#a > p:nth-of-type(2)", FILTER)
        assert found is not None
        assert found.text_content() == "y"

    def test_built_path_finds_its_element(self) -> None:
        doc = parse_html(
            '<div class="c"><section><p>a</p><p class="k">b</p></section>'
            "<section><p>c</p></section></div>"
        )
        for p in [el for el in doc.body.iter_elements() if el.tag == "p"]:
            assert query_path(doc.root, _path(p), FILTER) is p

    def test_malformed_path_raises(self) -> None:
        doc = parse_html("<p>x</p>")
        with pytest.raises(PathSyntaxError):
            query_path(doc.root, "p >", FILTER)
