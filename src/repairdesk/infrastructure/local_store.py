# src/repairdesk/infrastructure/local_store.py
"""
SQLite Key-Value Store

Durable local persistence for the sync queue and the equipment cache.
A single `kv_store` table; values are opaque strings (JSON in practice).

Usage:
    from .local_store import SQLiteKeyValueStore

    store = SQLiteKeyValueStore("repairdesk_local.db")
    store.set("repairdesk:sync_queue", "[]")
    raw = store.get("repairdesk:sync_queue")
"""

import logging
import sqlite3
from typing import Optional

from ..core.ports.storage import KeyValueStore

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL,
  updated_at TEXT DEFAULT (datetime('now'))
);
"""


class SQLiteKeyValueStore(KeyValueStore):
    """
    KeyValueStore backed by a SQLite file.

    Calls are short synchronous statements; the event loop only ever
    touches this from one task at a time via the queue/cache locks.
    """

    def __init__(self, db_path: str = "repairdesk_local.db"):
        self._db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        if db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.executescript(SCHEMA)
        self._conn.commit()
        logger.debug(f"Local store opened: {db_path}")

    @property
    def path(self) -> str:
        return self._db_path

    def get(self, key: str) -> Optional[str]:
        row = self._conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        self._conn.execute(
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, datetime('now'))
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, value),
        )
        self._conn.commit()

    def delete(self, key: str) -> bool:
        cursor = self._conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        self._conn.commit()
        return cursor.rowcount > 0

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error as e:
            logger.warning(f"Failed to close local store {self._db_path}: {e}")
