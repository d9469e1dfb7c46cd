"""
Protocol definitions for the collaborators the search engine consumes.

- RecordStoreProtocol / RecordReaderProtocol: archive records
- CategoryProtocol: named categories (static lists or saved searches)
- CacheStoreProtocol: byte storage for memoized result lists

The local SQLite ArchiveStore implements all three; other backends are
loaded through the ``archivesearch.backends`` entry point group.
"""

from typing import Iterable, Optional, Protocol, runtime_checkable

from .types import CategoryScope, Record


@runtime_checkable
class RecordReaderProtocol(Protocol):
    """
    A read handle on the record store, owned by a single scan worker.

    Used as a context manager; closed when the worker finishes.
    """

    def get_record(self, id: str) -> Optional[Record]: ...

    def close(self) -> None: ...

    def __enter__(self) -> "RecordReaderProtocol": ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool: ...


@runtime_checkable
class RecordStoreProtocol(Protocol):
    """The archive record store."""

    def list_ids(self, scope: Optional[Iterable[str]] = None) -> list[str]: ...

    def get_record(self, id: str) -> Optional[Record]: ...

    def get_untagged_ids(self) -> set[str]: ...

    def open_reader(self) -> RecordReaderProtocol: ...


@runtime_checkable
class CategoryProtocol(Protocol):
    """Named categories."""

    def resolve(self, name: str) -> Optional[CategoryScope]: ...

    def touch_last_used(self, name: str) -> None: ...


@runtime_checkable
class CacheStoreProtocol(Protocol):
    """Persistent key/value storage for cached search results."""

    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: bytes) -> None: ...

    def clear(self) -> None: ...
