"""Centralised configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# src/contextmemo/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class MarkerConfig(BaseModel):
    """How highlight wrappers look in the document tree."""

    tag: str = "span"
    class_name: str = "web-annotator-highlight"
    id_attribute: str = "data-note-id"
    style: str = "background-color: yellow; cursor: pointer;"
    # Any class containing this marker belongs to the annotator itself and
    # is never used as a path discriminator.
    internal_class_marker: str = "web-annotator"

    @field_validator("tag")
    @classmethod
    def _lowercase_tag(cls, value: str) -> str:
        tag = value.strip().lower()
        if not tag.isalnum():
            msg = f"MARKER__TAG must be a plain element name, got {value!r}"
            raise ValueError(msg)
        return tag

    @model_validator(mode="after")
    def class_carries_internal_marker(self) -> MarkerConfig:
        if self.internal_class_marker not in self.class_name:
            msg = (
                "MARKER__CLASS_NAME must contain MARKER__INTERNAL_CLASS_MARKER, "
                "otherwise wrapper classes leak into container paths"
            )
            raise ValueError(msg)
        return self


class LocatorConfig(BaseModel):
    """Locator building and resolution behaviour."""

    # False: text inside wrappers is not visible when measuring offsets.
    # True: wrapper text counts as ordinary text.
    count_wrapped_text: bool = False
    # Search the concatenated visible text when no single text node holds
    # the whole span.
    cross_node_fallback: bool = False


class StoreConfig(BaseModel):
    """Note store location."""

    path: Path = Path("notes.json")


class AppConfig(BaseModel):
    """Runtime configuration for the command-line tool."""

    log_dir: Path = Path("logs")
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``MARKER__CLASS_NAME``, ``LOCATOR__CROSS_NODE_FALLBACK``,
    ``STORE__PATH``, etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    marker: MarkerConfig = MarkerConfig()
    locator: LocatorConfig = LocatorConfig()
    store: StoreConfig = StoreConfig()
    app: AppConfig = AppConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.debug("Settings: no .env file found, using env vars and defaults")

    return settings
