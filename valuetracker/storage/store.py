"""Per-extension SQLite store.

Each extension owns one database file at <cwd>/db/<extension_id>.db with three
tables:

  characters   id, name, created_at, updated_at
  instances    id, character_id → characters.id, name, created_at, updated_at
  data         (instance_id, key) → value as text, created_at, updated_at

The file is the store: every mutating call runs inside one explicit
transaction (BEGIN IMMEDIATE … COMMIT) and is on disk once it returns.
Cascading deletes, upserts, and bag rewrites roll back as a unit on failure.
Calls are serialized per Store with a re-entrant lock so readers never see a
half-applied cascade.

Timestamps are ISO-8601 UTC strings with millisecond precision.
"""

import logging
import sqlite3
import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from valuetracker.models import Character, FullCharacter, FullInstance, Instance, format_timestamp

from .codec import decode_value, encode_value
from .errors import BackingStoreError, InvalidArgumentError, StoreClosedError
from .ids import validate_extension_id

logger = logging.getLogger(__name__)

DB_DIR_NAME = "db"

SCHEMA = """
CREATE TABLE IF NOT EXISTS characters (
    id TEXT PRIMARY KEY,
    name TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS instances (
    id TEXT PRIMARY KEY,
    character_id TEXT NOT NULL,
    name TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (character_id) REFERENCES characters (id)
);
CREATE TABLE IF NOT EXISTS data (
    instance_id TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (instance_id, key),
    FOREIGN KEY (instance_id) REFERENCES instances (id)
);
CREATE INDEX IF NOT EXISTS idx_instances_character_id ON instances(character_id);
CREATE INDEX IF NOT EXISTS idx_data_instance_id ON data(instance_id);
"""

_CHARACTER_COLUMNS = "id, name, created_at, updated_at"
_INSTANCE_COLUMNS = "id, character_id, name, created_at, updated_at"

_UPSERT_DATA = (
    "INSERT INTO data (instance_id, key, value, created_at, updated_at) "
    "VALUES (?, ?, ?, ?, ?) "
    "ON CONFLICT(instance_id, key) DO UPDATE SET "
    "value = excluded.value, updated_at = excluded.updated_at"
)


def _now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def db_path_for(extension_id: str) -> Path:
    """The only location a Store may use for an extension's database."""
    return Path.cwd() / DB_DIR_NAME / f"{validate_extension_id(extension_id)}.db"


def _require(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidArgumentError(f"{label} is required")
    return value


def _to_character(row: sqlite3.Row) -> Character:
    return Character(
        id=row["id"],
        name=row["name"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _to_instance(row: sqlite3.Row) -> Instance:
    return Instance(
        id=row["id"],
        character_id=row["character_id"],
        name=row["name"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class Store:
    """One extension's characters, instances, and data bags.

    Open with Store.create(); the constructor only wires an already-open
    connection.
    """

    def __init__(self, extension_id: str, db_path: Path, conn: sqlite3.Connection) -> None:
        self._extension_id = extension_id
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = conn
        self._lock = threading.RLock()

    @classmethod
    def create(cls, extension_id: str, db_path: str | Path | None = None) -> "Store":
        """Open (creating if needed) the database for an extension.

        A caller-supplied db_path is never honoured: the file always lives
        under <cwd>/db/ and is named after the sanitized extension id.
        """
        sanitized = validate_extension_id(extension_id)
        path = db_path_for(sanitized)
        if db_path is not None:
            logger.warning(
                "Ignoring caller-supplied database path %r for extension %s; using %s",
                str(db_path), sanitized, path,
            )

        path.parent.mkdir(parents=True, exist_ok=True)
        existed = path.is_file()
        conn = None
        try:
            conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            if conn is not None:
                conn.close()
            logger.error("Could not open database for extension %s at %s: %s", sanitized, path, e)
            raise BackingStoreError(f"Could not open database for extension {sanitized}: {e}") from e

        logger.info(
            "%s database for extension %s at %s",
            "Opened existing" if existed else "Created", sanitized, path,
        )
        return cls(sanitized, path, conn)

    # ------------------------------------------------------------------
    # Lifecycle and accessors
    # ------------------------------------------------------------------

    @property
    def extension_id(self) -> str:
        return self._extension_id

    @property
    def db_path(self) -> Path:
        return self._db_path

    def is_open(self) -> bool:
        return self._conn is not None

    def flush(self) -> None:
        """Commit anything still pending on the connection."""
        with self._lock:
            conn = self._require_open()
            if conn.in_transaction:
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error as e:
                    raise BackingStoreError(str(e)) from e

    def close(self) -> None:
        """Flush and release the connection. Closing twice is a no-op."""
        with self._lock:
            if self._conn is None:
                return
            logger.info("Closing database for extension %s", self._extension_id)
            try:
                self.flush()
            finally:
                self._conn.close()
                self._conn = None

    def __repr__(self) -> str:
        state = "open" if self.is_open() else "closed"
        return f"<Store {self._extension_id!r} {state} at {self._db_path}>"

    def _require_open(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreClosedError()
        return self._conn

    @contextmanager
    def _reading(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._require_open()
            try:
                yield conn
            except sqlite3.Error as e:
                logger.error("Read failed for extension %s: %s", self._extension_id, e)
                raise BackingStoreError(str(e)) from e

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._require_open()
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                logger.error("Write failed for extension %s: %s", self._extension_id, e)
                raise BackingStoreError(str(e)) from e
            except BaseException:
                self._rollback(conn)
                raise

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    # ------------------------------------------------------------------
    # Row helpers (caller holds the lock)
    # ------------------------------------------------------------------

    @staticmethod
    def _character_row(conn: sqlite3.Connection, character_id: str) -> sqlite3.Row | None:
        return conn.execute(
            f"SELECT {_CHARACTER_COLUMNS} FROM characters WHERE id = ?", (character_id,)
        ).fetchone()

    @staticmethod
    def _instance_row(conn: sqlite3.Connection, instance_id: str) -> sqlite3.Row | None:
        return conn.execute(
            f"SELECT {_INSTANCE_COLUMNS} FROM instances WHERE id = ?", (instance_id,)
        ).fetchone()

    @staticmethod
    def _instance_rows(conn: sqlite3.Connection, character_id: str) -> list[sqlite3.Row]:
        return conn.execute(
            f"SELECT {_INSTANCE_COLUMNS} FROM instances WHERE character_id = ? ORDER BY rowid",
            (character_id,),
        ).fetchall()

    @staticmethod
    def _data(conn: sqlite3.Connection, instance_id: str) -> dict[str, Any]:
        rows = conn.execute(
            "SELECT key, value FROM data WHERE instance_id = ? ORDER BY rowid", (instance_id,)
        ).fetchall()
        return {row["key"]: decode_value(row["value"]) for row in rows}

    @staticmethod
    def _delete_instance_rows(conn: sqlite3.Connection, character_id: str) -> int:
        conn.execute(
            "DELETE FROM data WHERE instance_id IN "
            "(SELECT id FROM instances WHERE character_id = ?)",
            (character_id,),
        )
        return conn.execute("DELETE FROM instances WHERE character_id = ?", (character_id,)).rowcount

    @staticmethod
    def _encoded_items(values: Mapping[str, Any]) -> list[tuple[str, str]]:
        items = []
        for key, value in values.items():
            _require(key, "Data key")
            items.append((key, encode_value(value)))
        return items

    # ------------------------------------------------------------------
    # Characters
    # ------------------------------------------------------------------

    def upsert_character(self, character_id: str, name: str | None = None) -> Character:
        """Insert a character, or patch its name and refresh updated_at.

        name=None keeps the stored name.
        """
        _require(character_id, "Character ID")
        now = _now()
        with self._transaction() as conn:
            if self._character_row(conn, character_id) is not None:
                conn.execute(
                    "UPDATE characters SET name = COALESCE(?, name), updated_at = ? WHERE id = ?",
                    (name, now, character_id),
                )
            else:
                conn.execute(
                    "INSERT INTO characters (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
                    (character_id, name, now, now),
                )
            row = self._character_row(conn, character_id)
        logger.debug("Upserted character %s in %s", character_id, self._extension_id)
        return _to_character(row)

    def get_character(self, character_id: str) -> Character | None:
        with self._reading() as conn:
            row = self._character_row(conn, character_id)
        return _to_character(row) if row is not None else None

    def get_all_characters(self) -> list[Character]:
        with self._reading() as conn:
            rows = conn.execute(
                f"SELECT {_CHARACTER_COLUMNS} FROM characters ORDER BY rowid"
            ).fetchall()
        return [_to_character(row) for row in rows]

    def delete_character(self, character_id: str) -> bool:
        """Delete a character with all its instances and their data."""
        _require(character_id, "Character ID")
        with self._transaction() as conn:
            if self._character_row(conn, character_id) is None:
                return False
            removed = self._delete_instance_rows(conn, character_id)
            conn.execute("DELETE FROM characters WHERE id = ?", (character_id,))
        logger.debug(
            "Deleted character %s (%d instances) in %s", character_id, removed, self._extension_id
        )
        return True

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    def upsert_instance(
        self, instance_id: str, character_id: str, name: str | None = None
    ) -> Instance:
        """Insert an instance, or patch name/character_id and refresh updated_at.

        The parent character must already exist.
        """
        _require(instance_id, "Instance ID")
        _require(character_id, "Character ID")
        now = _now()
        with self._transaction() as conn:
            if self._character_row(conn, character_id) is None:
                raise InvalidArgumentError(f"Character not found: {character_id}")
            if self._instance_row(conn, instance_id) is not None:
                conn.execute(
                    "UPDATE instances SET name = COALESCE(?, name), "
                    "character_id = COALESCE(?, character_id), updated_at = ? WHERE id = ?",
                    (name, character_id, now, instance_id),
                )
            else:
                conn.execute(
                    "INSERT INTO instances (id, character_id, name, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (instance_id, character_id, name, now, now),
                )
            row = self._instance_row(conn, instance_id)
        logger.debug("Upserted instance %s in %s", instance_id, self._extension_id)
        return _to_instance(row)

    def get_instance(self, instance_id: str) -> Instance | None:
        with self._reading() as conn:
            row = self._instance_row(conn, instance_id)
        return _to_instance(row) if row is not None else None

    def get_instances_by_character(self, character_id: str) -> list[Instance]:
        with self._reading() as conn:
            rows = self._instance_rows(conn, character_id)
        return [_to_instance(row) for row in rows]

    def delete_instance(self, instance_id: str) -> bool:
        """Delete an instance and its data bag."""
        _require(instance_id, "Instance ID")
        with self._transaction() as conn:
            if self._instance_row(conn, instance_id) is None:
                return False
            conn.execute("DELETE FROM data WHERE instance_id = ?", (instance_id,))
            conn.execute("DELETE FROM instances WHERE id = ?", (instance_id,))
        return True

    def delete_instances_by_character(self, character_id: str) -> int:
        """Delete every instance of a character (and their data). Returns the count."""
        _require(character_id, "Character ID")
        with self._transaction() as conn:
            removed = self._delete_instance_rows(conn, character_id)
        return removed

    # ------------------------------------------------------------------
    # Data bags
    # ------------------------------------------------------------------

    def upsert_data(self, instance_id: str, key: str, value: Any) -> None:
        _require(instance_id, "Instance ID")
        _require(key, "Data key")
        now = _now()
        with self._transaction() as conn:
            conn.execute(_UPSERT_DATA, (instance_id, key, encode_value(value), now, now))

    def get_data(self, instance_id: str) -> dict[str, Any]:
        with self._reading() as conn:
            return self._data(conn, instance_id)

    def get_data_value(self, instance_id: str, key: str, default: Any = None) -> Any:
        """Decoded value for one key, or default when the key was never written."""
        _require(instance_id, "Instance ID")
        _require(key, "Data key")
        with self._reading() as conn:
            row = conn.execute(
                "SELECT value FROM data WHERE instance_id = ? AND key = ?", (instance_id, key)
            ).fetchone()
        if row is None:
            return default
        return decode_value(row["value"])

    def delete_data_value(self, instance_id: str, key: str) -> bool:
        _require(instance_id, "Instance ID")
        _require(key, "Data key")
        with self._transaction() as conn:
            deleted = conn.execute(
                "DELETE FROM data WHERE instance_id = ? AND key = ?", (instance_id, key)
            ).rowcount
        return deleted > 0

    def delete_data_values(self, instance_id: str, keys: Iterable[str]) -> int:
        """Delete several keys at once. Returns how many existed."""
        _require(instance_id, "Instance ID")
        keys = [_require(key, "Data key") for key in keys]
        removed = 0
        with self._transaction() as conn:
            for key in dict.fromkeys(keys):
                removed += conn.execute(
                    "DELETE FROM data WHERE instance_id = ? AND key = ?", (instance_id, key)
                ).rowcount
        return removed

    def clear_instance_data(self, instance_id: str) -> bool:
        """Empty an instance's bag. False when it was already empty."""
        _require(instance_id, "Instance ID")
        with self._transaction() as conn:
            deleted = conn.execute("DELETE FROM data WHERE instance_id = ?", (instance_id,)).rowcount
        return deleted > 0

    def merge_data(self, instance_id: str, values: Mapping[str, Any]) -> None:
        """Upsert every given key, keeping all others."""
        _require(instance_id, "Instance ID")
        items = self._encoded_items(values)
        now = _now()
        with self._transaction() as conn:
            for key, text in items:
                conn.execute(_UPSERT_DATA, (instance_id, key, text, now, now))

    def replace_data(self, instance_id: str, values: Mapping[str, Any]) -> None:
        """Make the bag hold exactly the given keys."""
        _require(instance_id, "Instance ID")
        items = self._encoded_items(values)
        now = _now()
        with self._transaction() as conn:
            conn.execute("DELETE FROM data WHERE instance_id = ?", (instance_id,))
            conn.executemany(
                "INSERT INTO data (instance_id, key, value, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?)",
                [(instance_id, key, text, now, now) for key, text in items],
            )

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def get_full_character(self, character_id: str) -> FullCharacter | None:
        with self._reading() as conn:
            row = self._character_row(conn, character_id)
            if row is None:
                return None
            instances = [
                FullInstance(instance=_to_instance(inst), data=self._data(conn, inst["id"]))
                for inst in self._instance_rows(conn, character_id)
            ]
        return FullCharacter(character=_to_character(row), instances=instances)

    def get_full_instance(self, instance_id: str) -> FullInstance | None:
        with self._reading() as conn:
            row = self._instance_row(conn, instance_id)
            if row is None:
                return None
            data = self._data(conn, instance_id)
        return FullInstance(instance=_to_instance(row), data=data)
