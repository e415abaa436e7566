"""
IndexStore - the persisted key -> Value File mapping.

The Index is a single JSON object. Its key order is the order of last
(re-)insertion, so the last key is the most recently written one.

Nothing is cached: ``load()`` reads the file every time, and callers pass
the returned dict explicitly through ``with_entry`` / ``without_entry``
before handing it to ``persist()``. There is no locking, so two
load -> persist cycles that overlap lose the earlier one's change.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Dict

from kvshelf.core.errors import CorruptIndexError

Index = Dict[str, str]


def with_entry(index: Index, key: str, filename: str) -> Index:
    """Return a copy of ``index`` with ``key`` moved to the end, pointing at ``filename``."""
    updated = {k: v for k, v in index.items() if k != key}
    updated[key] = filename
    return updated


def without_entry(index: Index, key: str) -> Index:
    """Return a copy of ``index`` without ``key``."""
    return {k: v for k, v in index.items() if k != key}


class IndexStore:
    """Loads and atomically rewrites the Index file."""

    def __init__(self, index_path: Path, values_dir: Path):
        """Initialize the store.

        Args:
            index_path: Path to the Index JSON file
            values_dir: Directory holding the Value Files
        """
        self.index_path = Path(index_path)
        self.values_dir = Path(values_dir)

    def _ensure(self) -> None:
        """Create the Values Directory and an empty Index on first access."""
        self.values_dir.mkdir(parents=True, exist_ok=True)
        if not self.index_path.exists():
            self.persist({})

    def load(self) -> Index:
        """Read the current Index.

        Returns:
            Fresh dict of key -> filename in recency order

        Raises:
            CorruptIndexError: If the file is not a JSON object of strings
        """
        self._ensure()

        with open(self.index_path, encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise CorruptIndexError(f"Index is not valid JSON: {self.index_path}: {e}") from e

        if not isinstance(data, dict):
            raise CorruptIndexError(
                f"Index must be a JSON object, got {type(data).__name__}: {self.index_path}"
            )
        for key, filename in data.items():
            if not isinstance(filename, str):
                raise CorruptIndexError(f"Index entry {key!r} is not a filename: {filename!r}")

        return data

    def persist(self, index: Index) -> None:
        """Replace the Index file with ``index``.

        The mapping is written to a temporary file next to the Index and
        renamed over it, so a failed write leaves the previous Index intact.
        """
        self.index_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                delete=False,
                dir=self.index_path.parent,
                prefix=f".{self.index_path.name}.",
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                json.dump(index, f, indent=2, ensure_ascii=False)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.index_path)
        except BaseException:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise


__all__ = ["Index", "IndexStore", "with_entry", "without_entry"]
