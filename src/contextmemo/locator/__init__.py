"""Locators: durable descriptions of text spans, and their resolution."""

from contextmemo.locator.builder import build_locator
from contextmemo.locator.models import TextSpanDescriptor
from contextmemo.locator.resolver import (
    NotFound,
    NotFoundReason,
    ResolveStrategy,
    resolve_locator,
)
from contextmemo.locator.selector import (
    PathStep,
    PathSyntaxError,
    build_container_path,
    css_escape,
    parse_path,
    query_path,
)

__all__ = [
    "NotFound",
    "NotFoundReason",
    "PathStep",
    "PathSyntaxError",
    "ResolveStrategy",
    "TextSpanDescriptor",
    "build_container_path",
    "build_locator",
    "css_escape",
    "parse_path",
    "query_path",
    "resolve_locator",
]
