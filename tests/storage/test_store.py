"""Tests for the per-extension SQLite store."""

import logging
import re
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from valuetracker import storage
from valuetracker.models import format_timestamp
from valuetracker.storage import BackingStoreError, InvalidArgumentError, StoreClosedError


def _seed(store):
    store.upsert_character("char-1", "Gareth")
    store.upsert_instance("inst-1", "char-1", "Main")
    store.upsert_data("inst-1", "hp", 100)
    store.upsert_data("inst-1", "level", "advanced")


# ── Opening ─────────────────────────────────────────────────


def test_create_makes_db_file_under_cwd(isolated_cwd):
    s = storage.Store.create("ext-A")
    try:
        assert s.db_path == isolated_cwd / "db" / "ext-A.db"
        assert s.db_path.is_file()
        assert s.is_open()
        assert s.extension_id == "ext-A"
    finally:
        s.close()


def test_create_uses_sanitized_id(isolated_cwd):
    s = storage.Store.create("../dangerous/path")
    try:
        assert s.extension_id == "dangerous_path"
        assert s.db_path == isolated_cwd / "db" / "dangerous_path.db"
    finally:
        s.close()


def test_create_ignores_caller_path(isolated_cwd, caplog):
    """A supplied path is never used, and the override is logged."""
    elsewhere = isolated_cwd / "elsewhere" / "evil.db"
    with caplog.at_level(logging.WARNING):
        s = storage.Store.create("ext-A", db_path=elsewhere)
    try:
        assert s.db_path == isolated_cwd / "db" / "ext-A.db"
        assert not elsewhere.exists()
        assert "Ignoring caller-supplied database path" in caplog.text
    finally:
        s.close()


def test_schema_created(store):
    conn = sqlite3.connect(store.db_path)
    try:
        names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master")}
    finally:
        conn.close()
    assert {"characters", "instances", "data"} <= names
    assert {"idx_instances_character_id", "idx_data_instance_id"} <= names


def test_data_survives_reopen():
    s = storage.Store.create("ext-A")
    _seed(s)
    s.close()

    reopened = storage.Store.create("ext-A")
    try:
        assert reopened.get_character("char-1").name == "Gareth"
        assert reopened.get_data("inst-1") == {"hp": 100, "level": "advanced"}
    finally:
        reopened.close()


def test_distinct_ids_are_isolated():
    a = storage.Store.create("ext-A")
    b = storage.Store.create("ext-B")
    try:
        a.upsert_character("char-1", "Only in A")
        assert b.get_character("char-1") is None
        assert b.get_all_characters() == []
        assert a.db_path != b.db_path
    finally:
        a.close()
        b.close()


# ── Characters ──────────────────────────────────────────────


def test_upsert_character_insert_and_get(store):
    created = store.upsert_character("char-1", "Gareth")
    assert created.id == "char-1"
    assert created.name == "Gareth"
    assert created.updated_at == created.created_at

    fetched = store.get_character("char-1")
    assert fetched == created


def test_upsert_character_patches_name_keeps_created_at(store):
    first = store.upsert_character("char-1", "Gareth")
    second = store.upsert_character("char-1", "Gareth the Bold")
    assert second.name == "Gareth the Bold"
    assert second.created_at == first.created_at
    assert second.updated_at >= second.created_at


def test_upsert_character_without_name_keeps_name(store):
    store.upsert_character("char-1", "Gareth")
    updated = store.upsert_character("char-1")
    assert updated.name == "Gareth"


def test_upsert_character_without_name_on_insert(store):
    assert store.upsert_character("char-1").name is None


def test_upsert_character_requires_id(store):
    with pytest.raises(InvalidArgumentError):
        store.upsert_character("")


def test_get_character_missing(store):
    assert store.get_character("nobody") is None


def test_get_all_characters(store):
    store.upsert_character("char-1", "A")
    store.upsert_character("char-2", "B")
    assert [c.id for c in store.get_all_characters()] == ["char-1", "char-2"]


def test_delete_character_cascades(store):
    _seed(store)
    store.upsert_instance("inst-2", "char-1")
    store.upsert_data("inst-2", "mp", 5)

    assert store.delete_character("char-1") is True
    assert store.get_character("char-1") is None
    assert store.get_instances_by_character("char-1") == []
    assert store.get_instance("inst-1") is None
    assert store.get_data("inst-1") == {}
    assert store.get_data("inst-2") == {}


def test_delete_character_leaves_others(store):
    _seed(store)
    store.upsert_character("char-2")
    store.upsert_instance("inst-2", "char-2")
    store.upsert_data("inst-2", "hp", 7)

    store.delete_character("char-1")
    assert store.get_character("char-2") is not None
    assert store.get_data("inst-2") == {"hp": 7}


def test_delete_character_missing(store):
    assert store.delete_character("nobody") is False


def test_delete_character_is_atomic(store):
    """A failure mid-cascade rolls back the instance and data deletes."""
    _seed(store)
    side = sqlite3.connect(store.db_path)
    side.execute(
        "CREATE TRIGGER block_delete BEFORE DELETE ON characters "
        "BEGIN SELECT RAISE(ABORT, 'blocked'); END"
    )
    side.commit()
    side.close()

    with pytest.raises(BackingStoreError):
        store.delete_character("char-1")

    assert store.get_character("char-1") is not None
    assert store.get_instance("inst-1") is not None
    assert store.get_data("inst-1") == {"hp": 100, "level": "advanced"}


# ── Instances ───────────────────────────────────────────────


def test_upsert_instance_insert(store):
    store.upsert_character("char-1")
    inst = store.upsert_instance("inst-1", "char-1", "Main")
    assert inst.id == "inst-1"
    assert inst.character_id == "char-1"
    assert inst.name == "Main"


def test_upsert_instance_requires_existing_character(store):
    with pytest.raises(InvalidArgumentError, match="Character not found"):
        store.upsert_instance("inst-1", "ghost")
    assert store.get_instance("inst-1") is None


def test_upsert_instance_requires_ids(store):
    store.upsert_character("char-1")
    with pytest.raises(InvalidArgumentError):
        store.upsert_instance("", "char-1")
    with pytest.raises(InvalidArgumentError):
        store.upsert_instance("inst-1", "")


def test_upsert_instance_moves_between_characters(store):
    store.upsert_character("char-1")
    store.upsert_character("char-2")
    first = store.upsert_instance("inst-1", "char-1", "Main")
    moved = store.upsert_instance("inst-1", "char-2")
    assert moved.character_id == "char-2"
    assert moved.name == "Main"
    assert moved.created_at == first.created_at
    assert store.get_instances_by_character("char-1") == []
    assert [i.id for i in store.get_instances_by_character("char-2")] == ["inst-1"]


def test_delete_instance_cascades_data(store):
    _seed(store)
    assert store.delete_instance("inst-1") is True
    assert store.get_instance("inst-1") is None
    assert store.get_data("inst-1") == {}
    assert store.get_character("char-1") is not None


def test_delete_instance_missing(store):
    assert store.delete_instance("nobody") is False


def test_delete_instances_by_character(store):
    _seed(store)
    store.upsert_instance("inst-2", "char-1")
    assert store.delete_instances_by_character("char-1") == 2
    assert store.get_instances_by_character("char-1") == []
    assert store.get_data("inst-1") == {}
    assert store.get_character("char-1") is not None
    assert store.delete_instances_by_character("char-1") == 0


# ── Data ────────────────────────────────────────────────────


@pytest.mark.parametrize("value", [100, 1.5, True, False, None, "text", [1, 2], {"a": {"b": [1]}}])
def test_data_value_round_trip(store, value):
    store.upsert_data("inst-1", "k", value)
    assert store.get_data_value("inst-1", "k") == value


def test_nested_json_round_trip(store):
    _seed(store)
    store.upsert_data("inst-1", "stats", {"str": 15, "con": {"base": 14, "mod": 2}})
    assert store.get_data_value("inst-1", "stats")["con"]["mod"] == 2


def test_get_data_value_missing_returns_default(store):
    assert store.get_data_value("inst-1", "never") is None
    marker = object()
    assert store.get_data_value("inst-1", "never", marker) is marker


def test_stored_null_differs_from_missing(store):
    store.upsert_data("inst-1", "k", None)
    marker = object()
    assert store.get_data_value("inst-1", "k", marker) is None


def test_upsert_data_overwrites(store):
    store.upsert_data("inst-1", "hp", 100)
    store.upsert_data("inst-1", "hp", 50)
    assert store.get_data("inst-1") == {"hp": 50}


def test_upsert_data_keeps_created_at(store):
    store.upsert_data("inst-1", "hp", 100)
    conn = sqlite3.connect(store.db_path)
    before = conn.execute("SELECT created_at FROM data WHERE key = 'hp'").fetchall()[0][0]
    store.upsert_data("inst-1", "hp", 50)
    after, updated = conn.execute(
        "SELECT created_at, updated_at FROM data WHERE key = 'hp'"
    ).fetchall()[0]
    conn.close()
    assert after == before
    assert updated >= after


def test_upsert_data_requires_ids(store):
    with pytest.raises(InvalidArgumentError):
        store.upsert_data("", "k", 1)
    with pytest.raises(InvalidArgumentError):
        store.upsert_data("inst-1", "", 1)


def test_delete_data_value(store):
    _seed(store)
    assert store.delete_data_value("inst-1", "hp") is True
    assert store.get_data("inst-1") == {"level": "advanced"}
    assert store.delete_data_value("inst-1", "hp") is False


def test_delete_data_values_counts_existing(store):
    _seed(store)
    assert store.delete_data_values("inst-1", ["hp", "missing", "hp"]) == 1
    assert store.get_data("inst-1") == {"level": "advanced"}
    assert store.delete_data_values("inst-1", ["nope"]) == 0


def test_clear_instance_data(store):
    _seed(store)
    assert store.clear_instance_data("inst-1") is True
    assert store.get_data("inst-1") == {}
    assert store.clear_instance_data("inst-1") is False


def test_replace_data(store):
    _seed(store)
    store.replace_data("inst-1", {"hp": 50, "new": "x"})
    assert store.get_data("inst-1") == {"hp": 50, "new": "x"}


def test_replace_data_empty_clears(store):
    _seed(store)
    store.replace_data("inst-1", {})
    assert store.get_data("inst-1") == {}


def test_replace_data_rejects_empty_key_without_writing(store):
    _seed(store)
    with pytest.raises(InvalidArgumentError):
        store.replace_data("inst-1", {"": 1, "hp": 2})
    assert store.get_data("inst-1") == {"hp": 100, "level": "advanced"}


def test_merge_data(store):
    _seed(store)
    store.merge_data("inst-1", {"hp": 75, "added": True})
    assert store.get_data("inst-1") == {"hp": 75, "level": "advanced", "added": True}


def test_merge_data_empty_is_noop(store):
    _seed(store)
    store.merge_data("inst-1", {})
    assert store.get_data("inst-1") == {"hp": 100, "level": "advanced"}


# ── Aggregates ──────────────────────────────────────────────


def test_get_full_character(store):
    _seed(store)
    store.upsert_instance("inst-2", "char-1")
    full = store.get_full_character("char-1")
    assert full.character.id == "char-1"
    assert [fi.instance.id for fi in full.instances] == ["inst-1", "inst-2"]
    assert full.instances[0].data == {"hp": 100, "level": "advanced"}
    assert full.instances[1].data == {}


def test_get_full_character_missing(store):
    assert store.get_full_character("nobody") is None


def test_get_full_instance(store):
    _seed(store)
    full = store.get_full_instance("inst-1")
    assert full.instance.character_id == "char-1"
    assert full.data == {"hp": 100, "level": "advanced"}
    assert store.get_full_instance("nobody") is None


def test_full_character_serializes_camel_case(store):
    _seed(store)
    dumped = store.get_full_character("char-1").model_dump(by_alias=True, mode="json")
    assert set(dumped["character"]) == {"id", "name", "createdAt", "updatedAt"}
    assert dumped["instances"][0]["instance"]["characterId"] == "char-1"


def test_timestamps_serialize_as_stored_text(store):
    store.upsert_character("char-1")
    conn = sqlite3.connect(store.db_path)
    stored = conn.execute("SELECT created_at FROM characters").fetchall()[0][0]
    conn.close()

    dumped = store.get_character("char-1").model_dump(by_alias=True, mode="json")
    assert dumped["createdAt"] == stored
    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", stored)


def test_format_timestamp_treats_naive_as_utc():
    naive = datetime(2024, 5, 1, 12, 30, 45, 123456)
    assert format_timestamp(naive) == "2024-05-01T12:30:45.123Z"
    offset = datetime(2024, 5, 1, 14, 30, 45, 123000, tzinfo=timezone(timedelta(hours=2)))
    assert format_timestamp(offset) == "2024-05-01T12:30:45.123Z"


# ── Closing ─────────────────────────────────────────────────


def test_close_then_write_fails_without_touching_file():
    s = storage.Store.create("ext-A")
    _seed(s)
    s.close()
    before = Path(s.db_path).read_bytes()

    assert not s.is_open()
    with pytest.raises(StoreClosedError, match="Database is closed"):
        s.upsert_character("char-2", "Late")
    assert Path(s.db_path).read_bytes() == before


def test_closed_store_rejects_reads():
    s = storage.Store.create("ext-A")
    s.close()
    with pytest.raises(StoreClosedError):
        s.get_all_characters()
    with pytest.raises(StoreClosedError):
        s.get_data("inst-1")


def test_close_twice_is_noop():
    s = storage.Store.create("ext-A")
    s.close()
    s.close()
    assert not s.is_open()


def test_flush_on_open_store(store):
    _seed(store)
    store.flush()
    assert store.get_data("inst-1")["hp"] == 100
