"""
KVStore - the key-value engine.

Composes the IndexStore, the value codec and Value File naming:

- every write encodes the value into a new, never-overwritten Value File,
  then reloads the Index, moves the key to the end and persists it
- every read loads the Index and decodes the Value File it points to

The Index is reloaded for every operation and never held between calls.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional

from kvshelf.core import codec
from kvshelf.core.config import StoreConfig
from kvshelf.core.errors import KVShelfError, MissingValueError, NotAListError
from kvshelf.core.index import IndexStore, with_entry, without_entry
from kvshelf.core.naming import FilenameGenerator, parse_filename, validate_key
from kvshelf.core.observability import Journal

DEFAULT_KEY = "last"

_MISSING = object()


@dataclass
class Entry:
    """A row of ``KVStore.list()``."""

    key: str
    filename: str
    modified: Optional[datetime]  # None if the Value File is missing


@dataclass
class Version:
    """One Value File of a key, as found in the Values Directory."""

    key: str
    filename: str
    timestamp: datetime
    format: str
    current: bool


class KVStore:
    """Persistent key-value store backed by an Index file and a Values Directory."""

    def __init__(
        self,
        index_store: IndexStore,
        generator: Optional[FilenameGenerator] = None,
        journal: Optional[Journal] = None,
    ):
        """Initialize the engine.

        Args:
            index_store: Where the Index lives (also names the Values Directory)
            generator: Value File name source; defaults to one bound to the Values Directory
            journal: Optional operation log
        """
        self.index_store = index_store
        self.values_dir = index_store.values_dir
        self.generator = generator or FilenameGenerator(self.values_dir)
        self.journal = journal

    @classmethod
    def from_config(cls, config: StoreConfig) -> "KVStore":
        index_store = IndexStore(config.index_path(), config.values_dir_path())
        journal = Journal(config.journal_path()) if config.journal else None
        return cls(index_store, journal=journal)

    def _log_error(self, operation: str, error: BaseException, key: Optional[str] = None) -> None:
        if self.journal is not None and isinstance(error, (KVShelfError, OSError)):
            self.journal.log_error(operation, error, key=key)

    # ---------------------------------------------------------------------
    # Value Files
    # ---------------------------------------------------------------------

    def _value_path(self, filename: str) -> Path:
        return self.values_dir / filename

    def _write_value(self, key: str, value: Any, fmt: Optional[str]) -> str:
        """Encode ``value`` into a new Value File and return its name."""
        fmt = codec.select_format(value, fmt)
        data = codec.encode(value, fmt)
        filename = self.generator.next_filename(key, fmt)

        self.values_dir.mkdir(parents=True, exist_ok=True)
        # "x": Value Files are never overwritten
        with open(self._value_path(filename), "xb") as f:
            f.write(data)
        return filename

    def _read_value(self, filename: str) -> Any:
        fmt = Path(filename).suffix.lstrip(".")
        return codec.decode(self._value_path(filename).read_bytes(), fmt)

    def _store(self, phase: str, key: str, value: Any, fmt: Optional[str] = None) -> str:
        """Write a Value File and point ``key`` at it."""
        filename = self._write_value(key, value, fmt)
        index = self.index_store.load()
        self.index_store.persist(with_entry(index, key, filename))

        if self.journal is not None:
            self.journal.log_write(phase, key, filename, Path(filename).suffix.lstrip("."))
        return filename

    def _current_list(self, key: str) -> Optional[List[Any]]:
        """Stored list for ``key``, None if absent.

        Raises:
            NotAListError: If the stored value is not a list
        """
        index = self.index_store.load()
        if key not in index:
            return None
        current = self._read_value(index[key])
        if codec.describe_shape(current) not in codec.LIST_SHAPES:
            raise NotAListError(key, current)
        return list(current)

    # ---------------------------------------------------------------------
    # Operations
    # ---------------------------------------------------------------------

    def set(self, key: str, value: Any, fmt: Optional[str] = None) -> Any:
        """Store ``value`` under ``key``.

        Args:
            key: Key to write
            value: Value to store
            fmt: Explicit format tag; chosen from the value's shape when empty

        Returns:
            The value passed in (not re-read from disk)
        """
        try:
            validate_key(key)
            self._store("set", key, value, fmt)
        except (KVShelfError, OSError) as e:
            self._log_error("set", e, key)
            raise
        return value

    def get(self, key: str = DEFAULT_KEY) -> Any:
        """Read the value stored under ``key``.

        ``"last"`` is an ordinary key, not a lookup of the newest entry.

        Returns:
            The decoded value, or None if the key is absent
        """
        index = self.index_store.load()
        if key not in index:
            return None
        return self._read_value(index[key])

    def delete(self, key: str = DEFAULT_KEY) -> None:
        """Remove ``key`` from the Index. Its Value Files stay on disk."""
        try:
            index = self.index_store.load()
            if key not in index:
                return
            filename = index[key]
            self.index_store.persist(without_entry(index, key))
        except (KVShelfError, OSError) as e:
            self._log_error("delete", e, key)
            raise

        if self.journal is not None:
            self.journal.log_delete(key, filename)

    def list(self) -> List[Entry]:
        """Entries in Index order (least recently written first)."""
        entries = []
        for key, filename in self.index_store.load().items():
            path = self._value_path(filename)
            modified = datetime.fromtimestamp(path.stat().st_mtime) if path.exists() else None
            entries.append(Entry(key=key, filename=filename, modified=modified))
        return entries

    def reset(self, confirm: Callable[[], bool]) -> bool:
        """Clear the Index after ``confirm()`` agrees. Value Files stay on disk.

        Returns:
            True if the Index was cleared
        """
        if not confirm():
            return False

        try:
            cleared = len(self.index_store.load())
            self.index_store.persist({})
        except (KVShelfError, OSError) as e:
            self._log_error("reset", e)
            raise

        if self.journal is not None:
            self.journal.log_reset(cleared)
        return True

    def push(self, key: str, value: Any = _MISSING, unique: bool = False) -> List[Any]:
        """Append ``value`` to the list stored under ``key``.

        An absent key starts a new one-element list. With ``unique`` every
        element equal to ``value`` is removed first, so the pushed value ends
        up last and appears once. ``None`` is a value like any other.

        Returns:
            The list as stored

        Raises:
            MissingValueError: If no value was given
            NotAListError: If ``key`` holds something other than a list
        """
        try:
            if value is _MISSING:
                raise MissingValueError(key)
            validate_key(key)

            items = self._current_list(key)
            if items is None:
                items = [value]
            else:
                if unique:
                    items = [item for item in items if not codec.values_equal(item, value)]
                items.append(value)

            self._store("push", key, items)
        except (KVShelfError, OSError) as e:
            self._log_error("push", e, key)
            raise
        return items

    def pop(self, key: str) -> Any:
        """Remove and return the last element of the list under ``key``.

        The shortened list (possibly empty) is written as a new Value File.

        Returns:
            The removed element, or None if the key is absent or the list empty

        Raises:
            NotAListError: If ``key`` holds something other than a list
        """
        try:
            items = self._current_list(key)
            if not items:
                return None

            last = items.pop()
            self._store("pop", key, items)
        except (KVShelfError, OSError) as e:
            self._log_error("pop", e, key)
            raise
        return last

    # ---------------------------------------------------------------------
    # History
    # ---------------------------------------------------------------------

    def history(self, key: str) -> List[Version]:
        """Every Value File written for ``key``, oldest first."""
        current = self.index_store.load().get(key)
        versions = []

        for path in self.values_dir.glob("*"):
            if not path.is_file() or path.name.startswith("."):
                continue
            try:
                parsed = parse_filename(path.name)
            except ValueError:
                continue
            if parsed.key != key:
                continue
            versions.append(
                Version(
                    key=key,
                    filename=path.name,
                    timestamp=parsed.timestamp,
                    format=parsed.format,
                    current=path.name == current,
                )
            )

        versions.sort(key=lambda v: v.filename)
        return versions

    def get_version(self, filename: str) -> Any:
        """Decode a specific Value File by name."""
        validate_key(parse_filename(filename).key)
        return self._read_value(filename)

    def orphans(self) -> List[str]:
        """Value Files that no Index entry points to, sorted by name."""
        referenced = set(self.index_store.load().values())
        return sorted(
            path.name
            for path in self.values_dir.glob("*")
            if path.is_file()
            and not path.name.startswith(".")
            and path.name not in referenced
        )


__all__ = ["KVStore", "Entry", "Version", "DEFAULT_KEY"]
