"""Per-extension SQLite storage.

Data layout:
  <cwd>/db/
    <extension_id>.db    One SQLite file per registered extension
      characters         id, name, created_at, updated_at
      instances          id, character_id, name, created_at, updated_at
      data               (instance_id, key) → JSON-ish text value

Extension id rules: "../" and "..\\" are removed until none remain, each of
< > : " / \\ | ? * becomes "_", the result is capped at 255 characters and
trimmed, and it may not be empty or start with a dot. The HTTP layer is
stricter still and only admits [A-Za-z0-9_-]+.

Value encoding: objects and arrays are stored as compact JSON, anything else
as its plain string form; reads try JSON and fall back to the raw string.

Registry: one Store per sanitized id. Re-registering closes the old Store.
CrossExtensionReader exposes the read half of every Store in a Registry.
"""

# Re-export all public symbols so `from valuetracker import storage` is enough.

from .codec import (  # noqa: F401
    JsonValue,
    decode_value,
    encode_value,
)

from .errors import (  # noqa: F401
    BackingStoreError,
    InvalidArgumentError,
    StoreClosedError,
    StoreError,
)

from .ids import (  # noqa: F401
    MAX_ID_LENGTH,
    is_valid_id,
    sanitize_extension_id,
    validate_extension_id,
)

from .store import (  # noqa: F401
    DB_DIR_NAME,
    Store,
    db_path_for,
)

from .registry import (  # noqa: F401
    Registry,
)

from .reader import (  # noqa: F401
    CrossExtensionReader,
)
