"""Process-wide table of open Stores, keyed by sanitized extension id."""

import logging
import threading

from .errors import InvalidArgumentError
from .ids import validate_extension_id
from .store import Store

logger = logging.getLogger(__name__)


class Registry:
    """Maps sanitized extension ids to their Store.

    Registering an id that is already present closes the previous Store
    before the new one takes its place. deregister() only forgets a Store;
    closing it is the caller's job, and close_all() is the backstop.
    """

    def __init__(self) -> None:
        self._stores: dict[str, Store] = {}
        self._lock = threading.Lock()

    def register(self, extension_id: str) -> Store:
        """Open a fresh Store for the extension, replacing any existing one."""
        sanitized = validate_extension_id(extension_id)
        with self._lock:
            self._close_existing(sanitized)
            store = Store.create(sanitized)
            self._stores[sanitized] = store
        logger.info("Registered database for extension %s", sanitized)
        return store

    def register_with(self, extension_id: str, store: Store) -> Store:
        """Put an already-open Store under the extension's id."""
        sanitized = validate_extension_id(extension_id)
        if store.extension_id != sanitized:
            raise InvalidArgumentError(
                f"Store belongs to extension {store.extension_id!r}, not {sanitized!r}"
            )
        with self._lock:
            if self._stores.get(sanitized) is not store:
                self._close_existing(sanitized)
            self._stores[sanitized] = store
        logger.info("Registered database for extension %s", sanitized)
        return store

    def deregister(self, extension_id: str) -> Store | None:
        """Forget the extension's Store and hand it back (still open)."""
        sanitized = validate_extension_id(extension_id)
        with self._lock:
            store = self._stores.pop(sanitized, None)
        if store is None:
            logger.info("No database registered for extension %s", sanitized)
        else:
            logger.info("Deregistered database for extension %s", sanitized)
        return store

    def get(self, extension_id: str) -> Store | None:
        sanitized = validate_extension_id(extension_id)
        with self._lock:
            store = self._stores.get(sanitized)
        if store is None:
            logger.debug("Database not found for extension %s", sanitized)
        return store

    def close_all(self) -> None:
        """Close every Store, logging failures so the rest still close."""
        with self._lock:
            stores, self._stores = self._stores, {}
        if not stores:
            logger.debug("No extension databases to close")
            return
        for extension_id, store in stores.items():
            try:
                store.close()
            except Exception:
                logger.exception("Error closing database for extension %s", extension_id)
        logger.info("Closed %d extension database(s)", len(stores))

    def extension_ids(self) -> list[str]:
        with self._lock:
            return list(self._stores)

    def __contains__(self, extension_id: object) -> bool:
        try:
            sanitized = validate_extension_id(extension_id)
        except InvalidArgumentError:
            return False
        with self._lock:
            return sanitized in self._stores

    def __len__(self) -> int:
        with self._lock:
            return len(self._stores)

    def _close_existing(self, sanitized: str) -> None:
        existing = self._stores.pop(sanitized, None)
        if existing is not None:
            logger.info("Closing existing database for extension %s", sanitized)
            existing.close()
