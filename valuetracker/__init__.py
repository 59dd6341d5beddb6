"""Per-extension value storage plugin: characters, instances, and data bags."""

from .plugin import (  # noqa: F401
    exit,
    get_cross_extension_reader,
    info,
    init,
)
