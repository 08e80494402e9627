"""Shared pytest fixtures for contextmemo tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from contextmemo.config import LocatorConfig, Settings, get_settings
from contextmemo.store import NoteStore

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _isolated_settings(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Iterator[None]:
    """Keep ``get_settings()`` away from the real store and log locations."""
    monkeypatch.setenv("STORE__PATH", str(tmp_path / "default-notes.json"))
    monkeypatch.setenv("APP__LOG_DIR", str(tmp_path / "logs"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Default settings, ignoring any .env file."""
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def cross_node_settings() -> Settings:
    """Settings with the cross-node fallback switched on."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        locator=LocatorConfig(cross_node_fallback=True),
    )


@pytest.fixture
def store(tmp_path: Path) -> NoteStore:
    return NoteStore(tmp_path / "notes.json")
