"""Shared dependencies: the bound Registry/reader and request-level checks."""

from fastapi import Depends, Header, HTTPException

from valuetracker.storage import CrossExtensionReader, Registry, Store, is_valid_id

_registry: Registry | None = None
_reader: CrossExtensionReader | None = None

ID_RULE = "(alphanumeric, hyphens, underscores only)"


def bind(registry: Registry, reader: CrossExtensionReader) -> None:
    global _registry, _reader
    _registry = registry
    _reader = reader


def unbind() -> None:
    global _registry, _reader
    _registry = None
    _reader = None


def get_registry() -> Registry:
    if _registry is None:
        raise RuntimeError("valuetracker routes used before init()")
    return _registry


def get_reader() -> CrossExtensionReader:
    if _reader is None:
        raise RuntimeError("valuetracker routes used before init()")
    return _reader


def require_ids(message: str, *values: object) -> None:
    """400 unless every value is a strict id."""
    if not all(is_valid_id(v) for v in values):
        raise HTTPException(400, f"{message} {ID_RULE}")


def require_key(key: object, message: str = "Valid data key is required") -> str:
    if not isinstance(key, str) or not key.strip():
        raise HTTPException(400, message)
    return key


def extension_store(
    x_extension_id: str | None = Header(None),
    registry: Registry = Depends(get_registry),
) -> Store:
    """The caller's own Store, selected by the x-extension-id header."""
    if not x_extension_id:
        raise HTTPException(400, "Extension ID is required in header: x-extension-id")
    require_ids("Valid extension ID is required", x_extension_id)
    store = registry.get(x_extension_id)
    if store is None:
        raise HTTPException(404, f"Database not found for extension: {x_extension_id}")
    return store
