"""Pydantic request models for API endpoints.

Field names are snake_case here and camelCase in JSON bodies.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterBody(_Body):
    extension_id: str
    db_path: Any = None


class DeregisterBody(_Body):
    extension_id: str


class UpsertCharacter(_Body):
    id: str
    name: str | None = None


class UpsertInstance(_Body):
    id: str
    character_id: str
    name: str | None = None


class DataEntryBody(_Body):
    key: str
    value: Any = None


class RemoveKeysBody(_Body):
    keys: list[str]


class PingBody(_Body):
    message: str = ""
