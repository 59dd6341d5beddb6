"""Read-only view over other extensions' Stores.

Handed to co-hosted extensions so they can observe each other's data. Only
read methods exist. An unknown extension reads as empty: None, {}, [] or the
caller's default, depending on the shape of the call.
"""

from typing import Any

from valuetracker.models import Character, FullCharacter, FullInstance, Instance

from .registry import Registry
from .store import Store


class CrossExtensionReader:
    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    def _store(self, extension_id: str) -> Store | None:
        return self._registry.get(extension_id)

    def get_full_character(self, extension_id: str, character_id: str) -> FullCharacter | None:
        store = self._store(extension_id)
        if store is None:
            return None
        return store.get_full_character(character_id)

    def get_full_instance(self, extension_id: str, instance_id: str) -> FullInstance | None:
        store = self._store(extension_id)
        if store is None:
            return None
        return store.get_full_instance(instance_id)

    def get_instance_data(self, extension_id: str, instance_id: str) -> dict[str, Any]:
        store = self._store(extension_id)
        if store is None:
            return {}
        return store.get_data(instance_id)

    def get_data_value(
        self, extension_id: str, instance_id: str, key: str, default: Any = None
    ) -> Any:
        store = self._store(extension_id)
        if store is None:
            return default
        return store.get_data_value(instance_id, key, default)

    def get_all_characters(self, extension_id: str) -> list[Character]:
        store = self._store(extension_id)
        if store is None:
            return []
        return store.get_all_characters()

    def get_instances_by_character(self, extension_id: str, character_id: str) -> list[Instance]:
        store = self._store(extension_id)
        if store is None:
            return []
        return store.get_instances_by_character(character_id)
