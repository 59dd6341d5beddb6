"""Extension identifier sanitizing.

Two levels of strictness:

  sanitize_extension_id / validate_extension_id
      Turn anything string-like into a token that is safe as a filename
      fragment. Used by the Store and the Registry on every lookup.
  is_valid_id
      The strict admission check (letters, digits, "_" and "-") applied at
      the HTTP boundary to headers, path segments, and body ids.

"../dangerous/path" → "dangerous_path"
"""

import re

from .errors import InvalidArgumentError

MAX_ID_LENGTH = 255

_TRAVERSAL = ("../", "..\\")
_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*]')
_VALID_ID = re.compile(r"[A-Za-z0-9_-]+")


def sanitize_extension_id(extension_id: str) -> str:
    """Strip traversal sequences, replace unsafe characters, cap the length."""
    if not isinstance(extension_id, str):
        raise InvalidArgumentError(
            f"Extension ID must be a string, got {type(extension_id).__name__}"
        )
    if not extension_id:
        raise InvalidArgumentError("Extension ID cannot be empty")

    # Repeat until stable so "....//" cannot collapse into a fresh "../"
    sanitized = extension_id
    previous = None
    while sanitized != previous:
        previous = sanitized
        for seq in _TRAVERSAL:
            sanitized = sanitized.replace(seq, "")

    sanitized = _UNSAFE_CHARS.sub("_", sanitized)
    sanitized = sanitized[:MAX_ID_LENGTH]

    if not sanitized:
        raise InvalidArgumentError("Extension ID became empty after sanitization")
    return sanitized


def validate_extension_id(extension_id: str) -> str:
    """Sanitize, trim, and reject empty or hidden-file ids. Returns the token."""
    sanitized = sanitize_extension_id(extension_id)
    trimmed = sanitized.strip()
    if not trimmed:
        raise InvalidArgumentError("Extension ID cannot be only whitespace")
    if trimmed.startswith("."):
        raise InvalidArgumentError("Extension ID cannot start with a dot")
    return trimmed


def is_valid_id(value: object) -> bool:
    return isinstance(value, str) and _VALID_ID.fullmatch(value) is not None
