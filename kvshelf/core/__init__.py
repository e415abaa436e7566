"""Storage engine: index, value files, codecs."""

from kvshelf.core.engine import KVStore, Entry, Version
from kvshelf.core.index import IndexStore, with_entry, without_entry
from kvshelf.core.naming import FilenameGenerator, parse_filename
from kvshelf.core.observability import Journal, LogEntry

__all__ = [
    # Engine
    "KVStore",
    "Entry",
    "Version",
    # Index
    "IndexStore",
    "with_entry",
    "without_entry",
    # Naming
    "FilenameGenerator",
    "parse_filename",
    # Journal
    "Journal",
    "LogEntry",
]
