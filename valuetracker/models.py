"""Core domain models.

Store reads return these types. Field names are snake_case in Python and
camelCase on the wire (characterId, createdAt, updatedAt), so FastAPI
responses keep the JSON shape extensions already consume. Timestamps go out
as UTC with millisecond precision ("2026-01-01T12:00:00.123Z"), the same text
the store writes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with milliseconds and a Z suffix. Naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_serializer("created_at", "updated_at", when_used="json", check_fields=False)
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


class Character(_Model):
    """A named container owned by one extension."""

    id: str
    name: str | None = None
    created_at: datetime
    updated_at: datetime


class Instance(_Model):
    """A named sub-entity of a Character. Owns a DataBag."""

    id: str
    character_id: str
    name: str | None = None
    created_at: datetime
    updated_at: datetime


class FullInstance(_Model):
    instance: Instance
    data: dict[str, Any] = Field(default_factory=dict)


class FullCharacter(_Model):
    character: Character
    instances: list[FullInstance] = Field(default_factory=list)
