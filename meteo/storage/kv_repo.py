"""Repository for the local key-value store."""

import logging
import sqlite3
import threading
from typing import Protocol

from meteo.errors import PersistenceError

logger = logging.getLogger(__name__)


def get_value(conn: sqlite3.Connection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
    if row is None:
        return None
    return row[0]


def set_value(conn: sqlite3.Connection, key: str, value: str) -> None:
    """Insert or replace the value stored under key."""
    conn.execute(
        "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
        "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP",
        (key, value),
    )
    conn.commit()


def delete_value(conn: sqlite3.Connection, key: str) -> None:
    conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
    conn.commit()


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class SqliteKeyValueStore:
    """get/set store over the kv_store table.

    Errors from sqlite are raised as PersistenceError.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            try:
                return get_value(self.conn, key)
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to read {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        with self._lock:
            try:
                set_value(self.conn, key, value)
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to write {key}: {e}") from e
