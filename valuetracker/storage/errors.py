"""Exceptions raised by the storage core."""


class StoreError(Exception):
    """Base class for every storage failure."""


class InvalidArgumentError(StoreError, ValueError):
    """Malformed or missing identifier, key, or reference."""


class StoreClosedError(StoreError, RuntimeError):
    """Operation attempted on a Store after close()."""

    def __init__(self, message: str = "Database is closed") -> None:
        super().__init__(message)


class BackingStoreError(StoreError):
    """The SQLite engine failed; the operation's writes were rolled back."""
