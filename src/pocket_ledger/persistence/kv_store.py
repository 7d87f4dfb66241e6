"""Key-Value Store - SQLite-backed, size-bounded string slots.

Mirrors the semantics of browser local storage: synchronous string
get/set/remove under string keys, a total size quota, and two failure modes
(quota exceeded, storage disabled) that callers are expected to handle.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_items (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

PROBE_KEY = "__storage_probe__"


class KeyValueStoreError(Exception):
    """Base exception for key-value store failures."""
    pass


class QuotaExceededError(KeyValueStoreError):
    """Writing the item would exceed the configured quota."""

    def __init__(self, key: str, required: int, quota: int):
        super().__init__(
            f"Writing '{key}' needs {required} bytes, quota is {quota} bytes"
        )
        self.key = key
        self.required = required
        self.quota = quota


class StorageDisabledError(KeyValueStoreError):
    """The underlying database cannot be opened or written."""
    pass


def _item_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class KeyValueStore:
    """Synchronous key-value slots persisted in SQLite.

    Example:
        with KeyValueStore("data/ledger.db", quota_bytes=5 * 1024 * 1024) as kv:
            kv.set_item("transactions", "[]")
            raw = kv.get_item("transactions")
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        *,
        quota_bytes: int = 5 * 1024 * 1024,
    ) -> None:
        """Initialize the store.

        Args:
            db_path: SQLite file path, or ``:memory:`` for a private store
            quota_bytes: Maximum UTF-8 size of all keys and values together
        """
        self.db_path = str(db_path)
        self.quota_bytes = quota_bytes
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection, opening it and the schema on first use."""
        if self._conn is None:
            try:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self.db_path)
                conn.execute("PRAGMA busy_timeout = 5000")
                conn.executescript(SCHEMA_SQL)
                conn.commit()
            except (sqlite3.Error, OSError) as e:
                raise StorageDisabledError(
                    f"Cannot open key-value store at {self.db_path}: {e}"
                ) from e
            self._conn = conn
        return self._conn

    def get_item(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None if absent."""
        try:
            row = self._get_conn().execute(
                "SELECT value FROM kv_items WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageDisabledError(f"Cannot read '{key}': {e}") from e
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, enforcing the quota."""
        conn = self._get_conn()
        required = self.used_bytes(exclude=key) + _item_size(key, value)
        if required > self.quota_bytes:
            raise QuotaExceededError(key, required, self.quota_bytes)

        try:
            conn.execute(
                """
                INSERT INTO kv_items (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = datetime('now')
                """,
                (key, value),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageDisabledError(f"Cannot write '{key}': {e}") from e

    def remove_item(self, key: str) -> bool:
        """Delete ``key``. Returns True if it existed."""
        try:
            conn = self._get_conn()
            cursor = conn.execute("DELETE FROM kv_items WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageDisabledError(f"Cannot remove '{key}': {e}") from e
        return cursor.rowcount > 0

    def keys(self) -> list[str]:
        try:
            rows = self._get_conn().execute(
                "SELECT key FROM kv_items ORDER BY key"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageDisabledError(f"Cannot list keys: {e}") from e
        return [row[0] for row in rows]

    def used_bytes(self, exclude: str | None = None) -> int:
        """Total UTF-8 size of stored keys and values."""
        try:
            row = self._get_conn().execute(
                """
                SELECT COALESCE(SUM(LENGTH(CAST(key AS BLOB)) + LENGTH(CAST(value AS BLOB))), 0)
                FROM kv_items WHERE key IS NOT ?
                """,
                (exclude,),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageDisabledError(f"Cannot measure store size: {e}") from e
        return int(row[0])

    def probe(self) -> bool:
        """Check the store is usable with a live write and delete."""
        try:
            self.set_item(PROBE_KEY, PROBE_KEY)
            self.remove_item(PROBE_KEY)
            return True
        except KeyValueStoreError as e:
            logger.warning(f"Key-value store probe failed: {e}")
            return False

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> KeyValueStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = [
    "KeyValueStore",
    "KeyValueStoreError",
    "PROBE_KEY",
    "QuotaExceededError",
    "StorageDisabledError",
]
