"""Tests for contextmemo.locator.resolver.resolve_locator."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from contextmemo.config import LocatorConfig, Settings
from contextmemo.dom import parse_html
from contextmemo.locator import (
    NotFound,
    NotFoundReason,
    ResolveStrategy,
    TextSpanDescriptor,
    build_locator,
    resolve_locator,
)
from contextmemo.marker import SpanMarker
from tests.helpers.dom import select

EXAMPLE = '<div id="a"><p>Hello world, this is a test.</p></div>'
DRIFTED = '<div id="a"><p>Say: Hello world, this is a test.</p></div>'


class TestResolveUnchanged:
    """An unchanged tree resolves through the offset strategy."""

    def test_round_trip_returns_same_text(self, settings: Settings) -> None:
        doc = parse_html(EXAMPLE)
        descriptor = build_locator(select(doc, "this is"), settings=settings)
        span = resolve_locator(descriptor, doc, settings=settings)
        assert span
        assert span.text() == "this is"
        assert span.strategy == ResolveStrategy.OFFSET

    def test_offset_match_may_span_nodes(self, settings: Settings) -> None:
        doc = parse_html("<p>Hello <b>bold</b> world</p>")
        descriptor = build_locator(select(doc, "lo bold w"), settings=settings)
        span = resolve_locator(descriptor, parse_html(doc.to_html()), settings=settings)
        assert span
        assert span.text() == "lo bold w"
        assert span.strategy == ResolveStrategy.OFFSET

    def test_repeated_text_resolves_to_the_stored_occurrence(
        self, settings: Settings
    ) -> None:
        doc = parse_html("<p>one two one two</p>")
        descriptor = build_locator(select(doc, "one", 2), settings=settings)
        span = resolve_locator(descriptor, doc, settings=settings)
        assert span
        assert span.start.offset == 8

    def test_resolution_does_not_mutate(self, settings: Settings) -> None:
        doc = parse_html(EXAMPLE)
        descriptor = build_locator(select(doc, "world"), settings=settings)
        before = doc.to_html()
        resolve_locator(descriptor, doc, settings=settings)
        assert doc.to_html() == before


class TestResolveDrift:
    """Fallbacks recover text that moved inside its container."""

    def test_example_drift_uses_content_search(self, settings: Settings) -> None:
        descriptor = build_locator(
            select(parse_html(EXAMPLE), "world"), settings=settings
        )
        drifted = parse_html(DRIFTED)
        span = resolve_locator(descriptor, drifted, settings=settings)
        assert span
        assert span.strategy == ResolveStrategy.CONTENT_SEARCH
        assert span.text() == "world"
        assert span.start.offset == len("Say: Hello ")

    def test_cross_node_drift_is_missing_by_default(self, settings: Settings) -> None:
        doc = parse_html("<p>Hello <b>bold</b> world</p>")
        descriptor = build_locator(select(doc, "lo bold w"), settings=settings)
        drifted = parse_html("<p>Oh, Hello <b>bold</b> world</p>")
        result = resolve_locator(descriptor, drifted, settings=settings)
        assert result == NotFound(NotFoundReason.TEXT_MISSING, "lo bold w")

    def test_cross_node_fallback_when_enabled(
        self, settings: Settings, cross_node_settings: Settings
    ) -> None:
        doc = parse_html("<p>Hello <b>bold</b> world</p>")
        descriptor = build_locator(select(doc, "lo bold w"), settings=settings)
        drifted = parse_html("<p>Oh, Hello <b>bold</b> world</p>")
        span = resolve_locator(descriptor, drifted, settings=cross_node_settings)
        assert span
        assert span.strategy == ResolveStrategy.CROSS_NODE
        assert span.text() == "lo bold w"


class TestResolveWithHighlights:
    """Existing wrappers do not disturb resolution."""

    def test_other_highlight_in_same_container(self, settings: Settings) -> None:
        doc = parse_html(EXAMPLE)
        early = build_locator(select(doc, "Hello"), settings=settings)
        late = build_locator(select(doc, "a test"), settings=settings)

        SpanMarker(doc, settings=settings).wrap(select(doc, "Hello"), "early")
        span = resolve_locator(late, doc, settings=settings)
        assert span
        assert span.text() == "a test"
        assert span.strategy == ResolveStrategy.CONTENT_SEARCH

        again = resolve_locator(early, doc, settings=settings)
        assert again == NotFound(NotFoundReason.TEXT_MISSING, "Hello")

    def test_highlighted_text_is_not_visible(self, settings: Settings) -> None:
        doc = parse_html(EXAMPLE)
        descriptor = build_locator(select(doc, "world"), settings=settings)
        SpanMarker(doc, settings=settings).wrap(select(doc, "world"), "n1")
        result = resolve_locator(descriptor, doc, settings=settings)
        assert result == NotFound(NotFoundReason.TEXT_MISSING, "world")

    def test_highlighted_text_resolves_when_counted(self) -> None:
        counting = Settings(
            _env_file=None,  # type: ignore[call-arg]
            locator=LocatorConfig(count_wrapped_text=True),
        )
        doc = parse_html(EXAMPLE)
        descriptor = build_locator(select(doc, "world"), settings=counting)
        SpanMarker(doc, settings=counting).wrap(select(doc, "world"), "n1")
        span = resolve_locator(descriptor, doc, settings=counting)
        assert span
        assert span.text() == "world"
        assert span.strategy == ResolveStrategy.OFFSET


class TestNotFound:
    """Failures are returned, never raised."""

    def test_text_missing(self, settings: Settings) -> None:
        doc = parse_html(EXAMPLE)
        descriptor = build_locator(select(doc, "world"), settings=settings)
        result = resolve_locator(
            descriptor,
            parse_html('<div id="a"><p>Goodbye.</p></div>'),
            settings=settings,
        )
        assert isinstance(result, NotFound)
        assert result.reason is NotFoundReason.TEXT_MISSING
        assert not result

    def test_container_missing(self, settings: Settings) -> None:
        doc = parse_html(EXAMPLE)
        descriptor = build_locator(select(doc, "world"), settings=settings)
        result = resolve_locator(
            descriptor, parse_html("<p>Hello world</p>"), settings=settings
        )
        assert isinstance(result, NotFound)
        assert result.reason is NotFoundReason.CONTAINER_MISSING

    def test_invalid_path(self, settings: Settings) -> None:
        descriptor = TextSpanDescriptor(
            container_path="div >", text_offset=0, text_content="x"
        )
        document = parse_html("<div>x</div>")
        result = resolve_locator(descriptor, document, settings=settings)
        assert isinstance(result, NotFound)
        assert result.reason is NotFoundReason.INVALID_PATH


class TestTextSpanDescriptor:
    """The serialized record shape."""

    def test_record_uses_camel_case(self) -> None:
        descriptor = TextSpanDescriptor(
            container_path="div#a > p",
            text_offset=6,
            text_content="world",
            start_offset=6,
            end_offset=11,
        )
        assert descriptor.to_record() == {
            "containerPath": "div#a > p",
            "textOffset": 6,
            "textContent": "world",
            "startOffset": 6,
            "endOffset": 11,
        }

    def test_optional_offsets_are_omitted(self) -> None:
        descriptor = TextSpanDescriptor(
            container_path="body", text_offset=0, text_content="x"
        )
        assert descriptor.to_record() == {
            "containerPath": "body",
            "textOffset": 0,
            "textContent": "x",
        }

    def test_parses_record(self) -> None:
        descriptor = TextSpanDescriptor.model_validate(
            {"containerPath": "body > p", "textOffset": 2, "textContent": "ab"}
        )
        assert descriptor.container_path == "body > p"
        assert descriptor.start_offset is None

    @pytest.mark.parametrize(
        "record",
        [
            {"containerPath": "", "textOffset": 0, "textContent": "x"},
            {"containerPath": "p", "textOffset": -1, "textContent": "x"},
            {"containerPath": "p", "textOffset": 0, "textContent": ""},
        ],
    )
    def test_rejects_invalid_records(self, record: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            TextSpanDescriptor.model_validate(record)

    def test_is_immutable(self) -> None:
        descriptor = TextSpanDescriptor(
            container_path="p", text_offset=0, text_content="x"
        )
        with pytest.raises(ValidationError):
            descriptor.text_offset = 3  # type: ignore[misc]
