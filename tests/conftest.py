"""
Shared pytest fixtures for archivesearch tests.

Provides in-memory stores so most tests need no database.
"""

import threading
from typing import Iterable, Optional

import pytest

from archivesearch.archive_store import ArchiveStore, is_untagged
from archivesearch.cache import ResultCache
from archivesearch.search import SearchCoordinator
from archivesearch.types import CategoryScope, Record


class MemoryReader:
    """Reader handle over a MemoryRecordStore."""

    def __init__(self, store: "MemoryRecordStore"):
        self._store = store
        self.closed = False

    def get_record(self, id: str) -> Optional[Record]:
        return self._store.get_record(id)

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class MemoryRecordStore:
    """Dict-backed record store that counts calls."""

    def __init__(self, records: Iterable[Record] = ()):
        self.records = {r.id: r for r in records}
        self.get_calls = 0
        self.list_calls = 0
        self.untagged_calls = 0
        self.readers: list[MemoryReader] = []
        self._lock = threading.Lock()

    def add(self, id: str, title: str = "", tags: str = "", file: Optional[str] = "a.zip",
            is_new: bool = False) -> Record:
        record = Record(id=id, title=title, tags=tags, file=file, is_new=is_new)
        self.records[id] = record
        return record

    def list_ids(self, scope=None) -> list[str]:
        self.list_calls += 1
        ids = sorted(self.records)
        if scope is None:
            return ids
        return [id for id in scope if id in self.records]

    def get_record(self, id: str) -> Optional[Record]:
        with self._lock:
            self.get_calls += 1
        return self.records.get(id)

    def get_untagged_ids(self) -> set[str]:
        self.untagged_calls += 1
        return {id for id, r in self.records.items() if is_untagged(r.tags)}

    def open_reader(self) -> MemoryReader:
        reader = MemoryReader(self)
        with self._lock:
            self.readers.append(reader)
        return reader


class FailingRecordStore(MemoryRecordStore):
    """Record store whose reads fail for one ID."""

    def __init__(self, records: Iterable[Record] = (), fail_on: str = ""):
        super().__init__(records)
        self.fail_on = fail_on

    def get_record(self, id: str) -> Optional[Record]:
        if id == self.fail_on:
            raise ConnectionError("store unreachable")
        return super().get_record(id)


class MemoryCategories:
    """Category lookup backed by a dict."""

    def __init__(self):
        self.categories: dict[str, CategoryScope] = {}
        self.touched: list[str] = []

    def add_static(self, name: str, ids: Iterable[str]) -> None:
        self.categories[name] = CategoryScope(name=name, archive_ids=tuple(ids))

    def add_search(self, name: str, search: str) -> None:
        self.categories[name] = CategoryScope(name=name, search=search)

    def resolve(self, name: str) -> Optional[CategoryScope]:
        return self.categories.get(name)

    def touch_last_used(self, name: str) -> None:
        self.touched.append(name)


class MemoryCacheStore:
    """Byte cache backed by a dict."""

    def __init__(self):
        self.data: dict[str, bytes] = {}
        self.get_calls = 0
        self.set_calls = 0

    def get(self, key: str) -> Optional[bytes]:
        self.get_calls += 1
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.set_calls += 1
        self.data[key] = value

    def clear(self) -> None:
        self.data.clear()


class BrokenCacheStore:
    """Cache store that fails on every call."""

    def get(self, key: str) -> Optional[bytes]:
        raise ConnectionError("cache down")

    def set(self, key: str, value: bytes) -> None:
        raise ConnectionError("cache down")

    def clear(self) -> None:
        raise ConnectionError("cache down")


@pytest.fixture
def record_store():
    """A small library of tagged archives."""
    store = MemoryRecordStore()
    store.add("id01", "Alpha Book", "artist:bob,color,date_added:100")
    store.add("id02", "Beta Book", "artist:alice,parody:foo,date_added:200", is_new=True)
    store.add("id03", "Gamma Book 10", "artist:carol,category", is_new=True)
    store.add("id04", "Gamma Book 2", "cat,dog")
    store.add("id05", "Delta", "date_added:50")
    store.add("id06", "Epsilon", "")
    store.add("id07", "No File", "artist:bob", file=None)
    return store


@pytest.fixture
def categories():
    return MemoryCategories()


@pytest.fixture
def cache_store():
    return MemoryCacheStore()


@pytest.fixture
def coordinator(record_store, categories, cache_store):
    return SearchCoordinator(
        record_store, categories, ResultCache(cache_store), page_size=10, workers=3,
    )


@pytest.fixture
def archive_store(tmp_path):
    """A real SQLite ArchiveStore in a temp directory."""
    store = ArchiveStore(tmp_path / "archives.db")
    yield store
    store.close()
