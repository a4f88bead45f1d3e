"""SQLite chat storage backend.

Provides persistent chat storage in a SQLite database file, using a
single key/value row that holds the serialized chat set.
"""

import sqlite3
from pathlib import Path

from pydantic import ValidationError

from ..chat.models import Chat
from .base import STORAGE_KEY, ChatStorage, dump_chats, load_chats


class SQLiteChatStorage(ChatStorage):
    """SQLite-backed chat storage.

    Stores the chat set under one key, mirroring a browser
    local-storage record. Supports persistent storage across sessions.
    """

    def __init__(
        self,
        path: str | Path = "./deepreason.db",
        key: str = STORAGE_KEY,
        debug_callback=None,
    ):
        self._db_path = Path(path).expanduser()
        self._key = key
        self._debug_callback = debug_callback
        self._connection: sqlite3.Connection | None = None

    def _connect(self) -> sqlite3.Connection:
        if self._connection is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(str(self._db_path))
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            self._connection.commit()
        return self._connection

    def load(self) -> list[Chat]:
        row = self._connect().execute(
            "SELECT value FROM kv_store WHERE key = ?",
            (self._key,)
        ).fetchone()

        if row is None:
            return []

        try:
            return load_chats(row[0])
        except ValidationError as e:
            if self._debug_callback:
                self._debug_callback(
                    "warning", "Storage", f"Ignoring unreadable chat record: {str(e)[:120]}"
                )
            return []

    def save(self, chats: list[Chat]) -> None:
        connection = self._connect()
        connection.execute("""
            INSERT INTO kv_store (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
        """, (self._key, dump_chats(chats)))
        connection.commit()

    def clear(self) -> None:
        connection = self._connect()
        connection.execute("DELETE FROM kv_store WHERE key = ?", (self._key,))
        connection.commit()

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
