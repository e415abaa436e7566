"""
kvshelf - a minimal persistent key-value store with version history

Associate short keys with structured values (strings, numbers, dates,
lists, records, tables, binary), push and pop onto list values, and browse
every earlier version of a value.

Core components:
- KVStore: set/get/delete/push/pop/reset/list plus history browsing
- IndexStore: JSON key -> Value File mapping, rewritten atomically
- FilenameGenerator: chronologically sortable, collision-resistant Value File names
- codec: shape-driven choice between json, yaml and msgpack
- Journal: SQLite operation log
- StoreConfig / load_config: YAML + environment configuration
"""

__version__ = "0.1.0"

from kvshelf.core.config import StoreConfig, load_config
from kvshelf.core.engine import DEFAULT_KEY, Entry, KVStore, Version
from kvshelf.core.errors import (
    ConfigError,
    CorruptIndexError,
    InvalidKeyError,
    KVShelfError,
    MissingValueError,
    NotAListError,
    UnknownFormatError,
    UnsupportedValueError,
)
from kvshelf.core.index import IndexStore
from kvshelf.core.naming import FilenameGenerator
from kvshelf.core.observability import Journal, LogEntry

__all__ = [
    # Engine
    "KVStore",
    "Entry",
    "Version",
    "DEFAULT_KEY",
    "IndexStore",
    "FilenameGenerator",
    # Config
    "StoreConfig",
    "load_config",
    # Journal
    "Journal",
    "LogEntry",
    # Errors
    "KVShelfError",
    "ConfigError",
    "CorruptIndexError",
    "InvalidKeyError",
    "MissingValueError",
    "NotAListError",
    "UnknownFormatError",
    "UnsupportedValueError",
]
