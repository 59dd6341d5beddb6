"""Tests for extension id sanitizing and strict id checks."""

import pytest

from valuetracker import storage
from valuetracker.storage import InvalidArgumentError

UNSAFE = '<>:"/\\|?*'


# ── sanitize_extension_id ───────────────────────────────────


def test_sanitize_plain_id_unchanged():
    assert storage.sanitize_extension_id("my-extension_1") == "my-extension_1"


def test_sanitize_strips_traversal():
    assert storage.sanitize_extension_id("../etc") == "etc"
    assert storage.sanitize_extension_id("..\\etc") == "etc"


def test_sanitize_strips_nested_traversal():
    """"....//" collapses to "../" after one pass; it must not survive."""
    result = storage.sanitize_extension_id("....//secret")
    assert "../" not in result
    assert result == "secret"


def test_sanitize_replaces_unsafe_chars():
    assert storage.sanitize_extension_id('a<b>c:d"e|f?g*h') == "a_b_c_d_e_f_g_h"
    assert storage.sanitize_extension_id("a/b\\c") == "a_b_c"


def test_sanitize_caps_length():
    assert len(storage.sanitize_extension_id("a" * 300)) == storage.MAX_ID_LENGTH


def test_sanitize_rejects_empty():
    with pytest.raises(InvalidArgumentError):
        storage.sanitize_extension_id("")


def test_sanitize_rejects_non_string():
    with pytest.raises(InvalidArgumentError):
        storage.sanitize_extension_id(None)
    with pytest.raises(InvalidArgumentError):
        storage.sanitize_extension_id(42)


def test_sanitize_rejects_pure_traversal():
    with pytest.raises(InvalidArgumentError):
        storage.sanitize_extension_id("../../")


@pytest.mark.parametrize("raw", [
    "plain",
    "../dangerous/path",
    "....//....\\\\x",
    'we<i>rd:"na|me?*',
    "..././...\\.\\y",
    "z" * 400,
    " spaced out ",
])
def test_sanitize_idempotent_and_safe(raw):
    once = storage.sanitize_extension_id(raw)
    assert storage.sanitize_extension_id(once) == once
    assert not any(ch in once for ch in UNSAFE)
    assert "../" not in once and "..\\" not in once
    assert len(once) <= storage.MAX_ID_LENGTH


# ── validate_extension_id ───────────────────────────────────


def test_validate_traversal_example():
    assert storage.validate_extension_id("../dangerous/path") == "dangerous_path"


def test_validate_trims_whitespace():
    assert storage.validate_extension_id("  ext-A  ") == "ext-A"


@pytest.mark.parametrize("bad", ["", "   ", ".hidden", " .hidden", "../"])
def test_validate_rejects(bad):
    with pytest.raises(InvalidArgumentError):
        storage.validate_extension_id(bad)


def test_validate_truncates_overlong():
    result = storage.validate_extension_id("x" * 1000)
    assert result == "x" * storage.MAX_ID_LENGTH


# ── is_valid_id ─────────────────────────────────────────────


@pytest.mark.parametrize("good", ["ext-A", "char_1", "ABC", "0", "very_long_extension_id_with_numbers_12345"])
def test_is_valid_id_accepts(good):
    assert storage.is_valid_id(good)


@pytest.mark.parametrize("bad", [
    "", "has space", "dot.ted", "slash/ed", "../up", "trailing\n", "ümlaut", None, 7,
])
def test_is_valid_id_rejects(bad):
    assert not storage.is_valid_id(bad)
