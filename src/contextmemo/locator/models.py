"""Serializable locator records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TextSpanDescriptor(BaseModel):
    """Durable description of a text span.

    Serialized with camelCase keys (``containerPath``, ``textOffset``,
    ``textContent``, ``startOffset``, ``endOffset``) so stored records keep
    the shape the note store has always used.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    container_path: str = Field(min_length=1)
    text_offset: int = Field(ge=0)
    text_content: str = Field(min_length=1)
    # Intra-text-node offsets, only when the boundary sat inside a text node
    start_offset: int | None = Field(default=None, ge=0)
    end_offset: int | None = Field(default=None, ge=0)

    def to_record(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)
