"""
Shared pytest fixtures for kvshelf tests.

Provides fixtures for:
- Index stores and engines rooted in a temporary directory
- A journal database
- An environment with no KVSHELF_* variables and a private config home
"""

import os
from pathlib import Path
from typing import Callable, List

import pytest

from kvshelf import IndexStore, Journal, KVStore


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path: Path) -> Path:
    """Keep the user's environment and config home out of every test."""
    for key in list(os.environ):
        if key.startswith("KVSHELF_"):
            monkeypatch.delenv(key)
    config_home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home


@pytest.fixture
def index_store(tmp_path: Path) -> IndexStore:
    return IndexStore(tmp_path / "store" / "index.json", tmp_path / "store" / "values")


@pytest.fixture
def store(index_store: IndexStore) -> KVStore:
    return KVStore(index_store)


@pytest.fixture
def journal(tmp_path: Path) -> Journal:
    return Journal(tmp_path / "store" / "journal.db")


@pytest.fixture
def journaled_store(index_store: IndexStore, journal: Journal) -> KVStore:
    return KVStore(index_store, journal=journal)


@pytest.fixture
def value_files() -> Callable[[KVStore], List[str]]:
    """Names of all Value Files currently on disk."""

    def _list(store: KVStore) -> List[str]:
        if not store.values_dir.exists():
            return []
        return sorted(p.name for p in store.values_dir.iterdir() if p.is_file())

    return _list
