"""
Archive store using SQLite.

Holds the three kinds of data the search engine reads:
- Archive records (title, comma-joined tags, file, new flag)
- Categories: either a static list of archive IDs or a saved search
- The search cache: query signature -> serialized sorted results

Every write that can change a search result clears the search cache.
The engine itself never invalidates; that is this writer's job.
"""

import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from .errors import StoreUnavailableError
from .types import CategoryScope, Record

# Tag namespaces added automatically on import; an archive with only
# these is still considered untagged
AUTOMATIC_NAMESPACES = ("date_added", "source")


def _now() -> str:
    """Current timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def is_untagged(tags: str) -> bool:
    """True if tags hold no entry other than automatic namespaces."""
    for entry in (tags or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        namespace = entry.split(":", 1)[0].strip().lower() if ":" in entry else ""
        if namespace not in AUTOMATIC_NAMESPACES:
            return False
    return True


def _connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # Wait up to 5 seconds for locks instead of failing immediately
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


def _row_to_record(row: sqlite3.Row) -> Record:
    return Record(
        id=row["id"],
        title=row["title"],
        tags=row["tags"],
        file=row["file"],
        is_new=bool(row["is_new"]),
    )


class ArchiveReader:
    """
    Read handle with its own SQLite connection.

    Scan workers each open one so no connection is shared across threads.
    """

    def __init__(self, db_path: Path):
        try:
            self._conn: Optional[sqlite3.Connection] = _connect(db_path)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot open archive store {db_path}: {e}") from e

    def get_record(self, id: str) -> Optional[Record]:
        if self._conn is None:
            raise StoreUnavailableError("Archive reader is closed")
        try:
            row = self._conn.execute("""
                SELECT id, title, tags, file, is_new FROM archives WHERE id = ?
            """, (id,)).fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot read archive {id}: {e}") from e
        return _row_to_record(row) if row is not None else None

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class SearchCacheTable:
    """The search_cache table, exposed through CacheStoreProtocol."""

    def __init__(self, store: "ArchiveStore"):
        self._store = store

    def get(self, key: str) -> Optional[bytes]:
        row = self._store._query_one(
            "SELECT value FROM search_cache WHERE key = ?", (key,)
        )
        return bytes(row["value"]) if row is not None else None

    def set(self, key: str, value: bytes) -> None:
        self._store._write(
            "INSERT OR REPLACE INTO search_cache (key, value) VALUES (?, ?)",
            (key, sqlite3.Binary(value)),
        )

    def clear(self) -> None:
        self._store._write("DELETE FROM search_cache")

    def count(self) -> int:
        return self._store._query_one("SELECT COUNT(*) FROM search_cache")[0]


class ArchiveStore:
    """
    SQLite-backed archive, category and search cache store.

    Implements RecordStoreProtocol and CategoryProtocol directly; the
    cache is reachable as ``store.search_cache``.
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        self._init_db()
        self.search_cache = SearchCacheTable(self)

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = _connect(self._db_path)
        # WAL lets scan workers read while a writer is active
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS archives (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL DEFAULT '',
                tags TEXT NOT NULL DEFAULT '',
                file TEXT,
                is_new INTEGER NOT NULL DEFAULT 0,
                updated_at TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS categories (
                name TEXT PRIMARY KEY,
                search TEXT NOT NULL DEFAULT '',
                archives_json TEXT NOT NULL DEFAULT '[]',
                pinned INTEGER NOT NULL DEFAULT 0,
                last_used TEXT
            )
        """)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS search_cache (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL
            )
        """)
        self._conn.commit()

    @property
    def path(self) -> Path:
        return self._db_path

    def _query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        if self._conn is None:
            raise StoreUnavailableError("Archive store is closed")
        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Archive store query failed: {e}") from e

    def _query_one(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        rows = self._query(sql, params)
        return rows[0] if rows else None

    def _write(self, sql: str, params: tuple = (), *, invalidate: bool = False) -> int:
        if self._conn is None:
            raise StoreUnavailableError("Archive store is closed")
        try:
            with self._lock:
                # The connection context manager commits, or rolls back on error
                with self._conn:
                    cursor = self._conn.execute(sql, params)
                    if invalidate:
                        self._conn.execute("DELETE FROM search_cache")
                return cursor.rowcount
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Archive store write failed: {e}") from e

    # -------------------------------------------------------------------------
    # Archive writes
    # -------------------------------------------------------------------------

    def upsert_archive(
        self,
        id: str,
        *,
        title: str = "",
        tags: str = "",
        file: Optional[str] = None,
        is_new: bool = False,
    ) -> Record:
        """Insert or replace an archive record."""
        self._write("""
            INSERT OR REPLACE INTO archives (id, title, tags, file, is_new, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (id, title, tags, file, int(is_new), _now()), invalidate=True)
        return Record(id=id, title=title, tags=tags, file=file, is_new=is_new)

    def update_tags(self, id: str, tags: str) -> bool:
        """Replace an archive's tags. Returns False if it doesn't exist."""
        return self._write("""
            UPDATE archives SET tags = ?, updated_at = ? WHERE id = ?
        """, (tags, _now(), id), invalidate=True) > 0

    def set_new(self, id: str, is_new: bool) -> bool:
        return self._write("""
            UPDATE archives SET is_new = ?, updated_at = ? WHERE id = ?
        """, (int(is_new), _now(), id), invalidate=True) > 0

    def delete_archive(self, id: str) -> bool:
        return self._write(
            "DELETE FROM archives WHERE id = ?", (id,), invalidate=True,
        ) > 0

    # -------------------------------------------------------------------------
    # Archive reads (RecordStoreProtocol)
    # -------------------------------------------------------------------------

    def list_ids(self, scope: Optional[Iterable[str]] = None) -> list[str]:
        """
        List archive IDs.

        Args:
            scope: Only IDs from this collection that exist, in its order

        Returns:
            IDs sorted by ID when no scope is given
        """
        rows = self._query("SELECT id FROM archives ORDER BY id")
        ids = [row["id"] for row in rows]
        if scope is None:
            return ids
        known = set(ids)
        return [id for id in scope if id in known]

    def get_record(self, id: str) -> Optional[Record]:
        row = self._query_one("""
            SELECT id, title, tags, file, is_new FROM archives WHERE id = ?
        """, (id,))
        return _row_to_record(row) if row is not None else None

    def get_untagged_ids(self) -> set[str]:
        rows = self._query("SELECT id, tags FROM archives")
        return {row["id"] for row in rows if is_untagged(row["tags"])}

    def open_reader(self) -> ArchiveReader:
        return ArchiveReader(self._db_path)

    def count(self) -> int:
        return self._query_one("SELECT COUNT(*) FROM archives")[0]

    # -------------------------------------------------------------------------
    # Categories (CategoryProtocol)
    # -------------------------------------------------------------------------

    def create_category(
        self,
        name: str,
        *,
        search: str = "",
        archive_ids: Iterable[str] = (),
        pinned: bool = False,
    ) -> CategoryScope:
        """
        Create or replace a category.

        A non-empty search makes it a saved search and any archive IDs
        are ignored.
        """
        ids = [] if search else list(dict.fromkeys(archive_ids))
        self._write("""
            INSERT OR REPLACE INTO categories (name, search, archives_json, pinned, last_used)
            VALUES (?, ?, ?, ?, NULL)
        """, (name, search, json.dumps(ids), int(pinned)), invalidate=True)
        return CategoryScope(name=name, archive_ids=tuple(ids), search=search)

    def add_to_category(self, name: str, archive_id: str) -> bool:
        """Append an archive to a static category. False if not applicable."""
        scope = self.resolve(name)
        if scope is None or scope.is_saved_search:
            return False
        if archive_id in scope.archive_ids:
            return True
        ids = [*scope.archive_ids, archive_id]
        return self._write("""
            UPDATE categories SET archives_json = ? WHERE name = ?
        """, (json.dumps(ids), name), invalidate=True) > 0

    def delete_category(self, name: str) -> bool:
        return self._write(
            "DELETE FROM categories WHERE name = ?", (name,), invalidate=True,
        ) > 0

    def resolve(self, name: str) -> Optional[CategoryScope]:
        row = self._query_one("""
            SELECT name, search, archives_json FROM categories WHERE name = ?
        """, (name,))
        if row is None:
            return None
        return CategoryScope(
            name=row["name"],
            archive_ids=tuple(json.loads(row["archives_json"])),
            search=row["search"],
        )

    def touch_last_used(self, name: str) -> None:
        self._write("""
            UPDATE categories SET last_used = ? WHERE name = ?
        """, (_now(), name))

    def list_categories(self) -> list[dict]:
        """All categories, pinned first, then most recently used."""
        rows = self._query("""
            SELECT name, search, archives_json, pinned, last_used FROM categories
            ORDER BY pinned DESC, last_used IS NULL, last_used DESC, name
        """)
        return [
            {
                "name": row["name"],
                "search": row["search"],
                "archives": json.loads(row["archives_json"]),
                "pinned": bool(row["pinned"]),
                "last_used": row["last_used"],
            }
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        self.close()
