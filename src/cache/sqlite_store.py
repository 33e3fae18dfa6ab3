# src/cache/sqlite_store.py — v2
"""SQLite-based feed store (FEED_STORE_BACKEND=sqlite, the default).

Uses stdlib sqlite3 — no external dependency.
The cache lives in a single row of a documents table keyed by document id.
Each worker thread gets its own connection; WAL lets readers proceed while
another connection holds the file.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

from feedstore.cache.base_feed_store import BaseFeedStore
from feedstore.cache.codec import CACHE_DOCUMENT_ID
from feedstore.cache.errors import StorageUnavailable

logger = logging.getLogger(__name__)

DATABASE_FILENAME = "feed-store.sqlite3"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteFeedStore(BaseFeedStore):
    """SQLite-backed feed store."""

    def __init__(self, store_path: Path | str) -> None:
        super().__init__(store_path)
        self._db_path = self._store_path / DATABASE_FILENAME
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        try:
            self._store_path.mkdir(parents=True, exist_ok=True)
            conn = self._connection()
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            self._close_backend()
            raise StorageUnavailable(
                f"Cannot open feed store at {self._db_path}: {e}"
            ) from e
        logger.debug("Opened SQLite feed store at %s", self._db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _load_document(self) -> Any | None:
        cursor = self._connection().execute(
            "SELECT data FROM documents WHERE id = ?", (CACHE_DOCUMENT_ID,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return json.loads(row[0])

    def _save_document(self, document: dict[str, Any]) -> None:
        conn = self._connection()
        with conn:
            conn.execute(
                """INSERT OR REPLACE INTO documents (id, data, updated_at)
                   VALUES (?, ?, CURRENT_TIMESTAMP)""",
                (CACHE_DOCUMENT_ID, json.dumps(document)),
            )

    def _remove_document(self) -> bool:
        conn = self._connection()
        with conn:
            cursor = conn.execute(
                "DELETE FROM documents WHERE id = ?", (CACHE_DOCUMENT_ID,)
            )
        return cursor.rowcount > 0

    def _close_backend(self) -> None:
        with self._connections_lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()

    def _connection(self) -> sqlite3.Connection:
        """Return this thread's connection, opening it on first use."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._local.conn = conn
            with self._connections_lock:
                self._connections.append(conn)
        return conn
