"""SQLite-backed filter metadata cache.

Maps (filter_name, blob_id) to the memoized MD5 and size of the filtered
content. Keys are content-derived, so an entry can never go stale: entries
are written once and never replaced or deleted.

Environment:
    LFSGATE_FILTER_CACHE_DB_PATH: Path to SQLite database file.
        Default: ./var/filter-cache/filter_cache.sqlite3
"""

from __future__ import annotations

import contextlib
import logging
import os
import sqlite3
import threading
from pathlib import Path

from lfsgate.filters.base import FilterCacheEntry

logger = logging.getLogger(__name__)

LFSGATE_FILTER_CACHE_DB_PATH_ENV = "LFSGATE_FILTER_CACHE_DB_PATH"
DEFAULT_FILTER_CACHE_DB_PATH = "./var/filter-cache/filter_cache.sqlite3"


class FilterCacheError(Exception):
    """Raised when the filter cache is unavailable or corrupted."""


class SqliteFilterCache:
    """SQLite filter cache with thread-local connections.

    Creates database and parent directories on first use.
    Uses WAL mode so concurrent readers do not block the writer.
    """

    _CREATE_TABLE_SQL = """
        CREATE TABLE IF NOT EXISTS filter_cache (
            filter_name TEXT NOT NULL,
            blob_id TEXT NOT NULL,
            md5 TEXT NOT NULL,
            size INTEGER NOT NULL,
            PRIMARY KEY (filter_name, blob_id)
        )
    """

    _SELECT_SQL = """
        SELECT md5, size FROM filter_cache
        WHERE filter_name = ? AND blob_id = ?
    """

    _INSERT_SQL = """
        INSERT OR IGNORE INTO filter_cache (filter_name, blob_id, md5, size)
        VALUES (?, ?, ?, ?)
    """

    def __init__(self, db_path: str | None = None) -> None:
        """Initialize the filter cache.

        Args:
            db_path: Path to SQLite database file. If None, uses environment
                variable LFSGATE_FILTER_CACHE_DB_PATH or default path.
        """
        if db_path is None:
            db_path = os.environ.get(
                LFSGATE_FILTER_CACHE_DB_PATH_ENV, DEFAULT_FILTER_CACHE_DB_PATH
            )

        self._db_path = db_path
        self._local = threading.local()
        self._initialized = False
        self._init_lock = threading.Lock()

    @property
    def db_path(self) -> str:
        return self._db_path

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create a thread-local database connection.

        Raises:
            FilterCacheError: If connection cannot be established.
        """
        if not self._initialized:
            with self._init_lock:
                if not self._initialized:
                    self._ensure_database()
                    self._initialized = True

        conn = getattr(self._local, "conn", None)
        if conn is None:
            try:
                conn = sqlite3.connect(self._db_path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self._local.conn = conn
            except sqlite3.Error as e:
                raise FilterCacheError(f"Failed to connect to filter cache: {e}") from e

        return conn

    def _ensure_database(self) -> None:
        """Create database file and table if they don't exist."""
        try:
            db_path = Path(self._db_path)

            if db_path.is_dir():
                raise FilterCacheError(f"Filter cache path is a directory: {self._db_path}")

            db_path.parent.mkdir(parents=True, exist_ok=True)

            conn = sqlite3.connect(self._db_path)
            try:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute(self._CREATE_TABLE_SQL)
                conn.commit()
            finally:
                conn.close()

            logger.info("Initialized filter cache at %s", self._db_path)

        except sqlite3.Error as e:
            raise FilterCacheError(f"Failed to initialize filter cache: {e}") from e
        except OSError as e:
            raise FilterCacheError(f"Failed to create filter cache directory: {e}") from e

    def get(self, filter_name: str, blob_id: str) -> FilterCacheEntry | None:
        """Look up the memoized entry for a (filter, blob) pair.

        Raises:
            FilterCacheError: If lookup fails due to store error.
        """
        try:
            conn = self._get_connection()
            row = conn.execute(self._SELECT_SQL, (filter_name, blob_id)).fetchone()
        except sqlite3.Error as e:
            raise FilterCacheError(f"Failed to lookup filter cache entry: {e}") from e

        if row is None:
            return None
        return FilterCacheEntry(md5=row["md5"], size=row["size"])

    def put(self, filter_name: str, blob_id: str, entry: FilterCacheEntry) -> None:
        """Store an entry unless one already exists for the pair.

        Raises:
            FilterCacheError: If storage fails.
        """
        try:
            conn = self._get_connection()
            conn.execute(self._INSERT_SQL, (filter_name, blob_id, entry.md5, entry.size))
            conn.commit()
        except sqlite3.Error as e:
            raise FilterCacheError(f"Failed to store filter cache entry: {e}") from e

    def close(self) -> None:
        """Close the thread-local database connection if open."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            with contextlib.suppress(sqlite3.Error):
                conn.close()
            self._local.conn = None
