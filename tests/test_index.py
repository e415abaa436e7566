"""Tests for IndexStore."""

import json

import pytest

from kvshelf.core import index as index_module
from kvshelf.core.errors import CorruptIndexError
from kvshelf.core.index import IndexStore, with_entry, without_entry


class TestIndexHelpers:
    """Tests for the pure Index helpers."""

    def test_with_entry_appends_new_key(self):
        assert list(with_entry({"a": "a1"}, "b", "b1")) == ["a", "b"]

    def test_with_entry_moves_existing_key_to_end(self):
        index = {"a": "a1", "b": "b1", "c": "c1"}

        updated = with_entry(index, "a", "a2")

        assert list(updated.items()) == [("b", "b1"), ("c", "c1"), ("a", "a2")]
        # Input is left untouched
        assert index == {"a": "a1", "b": "b1", "c": "c1"}

    def test_without_entry(self):
        index = {"a": "a1", "b": "b1"}
        assert without_entry(index, "a") == {"b": "b1"}
        assert without_entry(index, "missing") == index
        assert index == {"a": "a1", "b": "b1"}


class TestIndexStore:
    """Tests for IndexStore load/persist."""

    def test_first_load_creates_artifacts(self, tmp_path):
        """Test that the first load creates an empty Index and the Values Directory."""
        store = IndexStore(tmp_path / "deep" / "index.json", tmp_path / "deep" / "values")

        assert store.load() == {}
        assert store.values_dir.is_dir()
        assert json.loads(store.index_path.read_text()) == {}

    def test_persist_and_load_keep_order(self, index_store):
        index_store.persist({"z": "z1", "a": "a1", "m": "m1"})
        assert list(index_store.load()) == ["z", "a", "m"]

    def test_load_returns_fresh_copy(self, index_store):
        """Test that mutating a loaded Index does not affect the next load."""
        index_store.persist({"a": "a1"})

        loaded = index_store.load()
        loaded["b"] = "b1"

        assert index_store.load() == {"a": "a1"}

    def test_failed_persist_keeps_previous_index(self, index_store, monkeypatch):
        """Test that an interrupted write never leaves a partial Index."""
        index_store.persist({"a": "a1"})

        def disk_full(obj, f, **kwargs):
            f.write('{"a": "a1", "b":')
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(index_module.json, "dump", disk_full)

        with pytest.raises(OSError, match="No space left"):
            index_store.persist({"a": "a1", "b": "b1"})

        monkeypatch.undo()
        assert index_store.load() == {"a": "a1"}
        leftovers = [p.name for p in index_store.index_path.parent.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_failed_rename_keeps_previous_index(self, index_store, monkeypatch):
        index_store.persist({"a": "a1"})

        def denied(src, dst):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(index_module.os, "replace", denied)

        with pytest.raises(PermissionError):
            index_store.persist({})

        monkeypatch.undo()
        assert index_store.load() == {"a": "a1"}

    @pytest.mark.parametrize("content", ["[1, 2]", "not json", '{"a": 1}'])
    def test_corrupt_index(self, index_store, content):
        index_store.index_path.parent.mkdir(parents=True, exist_ok=True)
        index_store.index_path.write_text(content)

        with pytest.raises(CorruptIndexError):
            index_store.load()


class TestLostUpdateRace:
    """Two unsynchronized load -> persist cycles: the later persist wins."""

    def test_later_persist_discards_earlier_change(self, index_store):
        index_store.persist({"base": "base_1.json"})

        # Both writers start from the same Index
        seen_by_a = index_store.load()
        seen_by_b = index_store.load()

        index_store.persist(with_entry(seen_by_a, "k1", "k1_1.json"))
        index_store.persist(with_entry(seen_by_b, "k2", "k2_1.json"))

        final = index_store.load()
        assert final == {"base": "base_1.json", "k2": "k2_1.json"}
        assert "k1" not in final
