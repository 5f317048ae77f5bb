"""Key-value persistence surfaces for the history store.

Each store holds whole string values under string keys. Reads return None for
absent keys; writes replace the full value. Nothing here interprets the data.
"""
import os
import sqlite3
import time
from pathlib import Path
from typing import Optional, Protocol


DB_PATH = Path(os.environ.get("JPLT_DB_PATH", Path(__file__).parent / "jplt.db"))


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store, used in tests and when no database is wanted."""

    def __init__(self, initial: Optional[dict] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SqliteStore:
    """SQLite-backed store: one row per key in the kv_store table."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path is not None else DB_PATH
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self):
        conn = self._connect()
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS kv_store (
                data_key TEXT PRIMARY KEY,
                data_json TEXT NOT NULL,
                updated_at REAL NOT NULL
            );
        """)
        conn.close()

    def get(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT data_json FROM kv_store WHERE data_key = ?", (key,)
            ).fetchone()
        finally:
            conn.close()
        return row["data_json"] if row else None

    def set(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO kv_store (data_key, data_json, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(data_key) DO UPDATE SET data_json = excluded.data_json, updated_at = excluded.updated_at",
                (key, value, time.time()),
            )
            conn.commit()
        finally:
            conn.close()

    def remove(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv_store WHERE data_key = ?", (key,))
            conn.commit()
        finally:
            conn.close()
