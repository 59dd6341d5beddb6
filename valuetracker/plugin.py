"""Host lifecycle hooks.

The host calls init(router) once at startup with the router that is mounted
under the plugin prefix, and exit() at shutdown. Co-hosted extensions that
want to read other extensions' data ask get_cross_extension_reader().
"""

import logging

from fastapi import APIRouter

from valuetracker.routes import deps
from valuetracker.routes import router as api_router
from valuetracker.storage import CrossExtensionReader, Registry

logger = logging.getLogger(__name__)

info = {
    "id": "valuetracker",
    "name": "Value Tracking Plugin",
    "description": "Per-extension character/instance value storage backed by SQLite.",
}

_registry: Registry | None = None
_reader: CrossExtensionReader | None = None


def set_cross_extension_reader(reader: CrossExtensionReader | None) -> None:
    global _reader
    _reader = reader


def get_cross_extension_reader() -> CrossExtensionReader:
    if _reader is None:
        raise RuntimeError("CrossExtensionReader not initialized. Call init() first.")
    return _reader


def init(router: APIRouter) -> CrossExtensionReader:
    """Build the registry and reader, then wire every endpoint onto router."""
    global _registry
    if _registry is not None:
        logger.warning("init() called twice; closing the previous registry")
        _registry.close_all()

    _registry = Registry()
    reader = CrossExtensionReader(_registry)
    deps.bind(_registry, reader)
    set_cross_extension_reader(reader)
    router.include_router(api_router)
    logger.info("Plugin %s loaded", info["id"])
    return reader


def exit() -> None:
    """Close every extension database."""
    global _registry
    if _registry is not None:
        _registry.close_all()
        _registry = None
    deps.unbind()
    set_cross_extension_reader(None)
    logger.info("Plugin %s exited", info["id"])
