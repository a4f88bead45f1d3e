"""JSON file chat storage backend.

Stores the whole chat set as one JSON document on disk.
"""

import json
import os
from pathlib import Path

from pydantic import ValidationError

from ..chat.models import Chat
from .base import ChatStorage, dump_chats, load_chats

DEFAULT_PATH = Path.home() / ".deepreason" / "chats.json"


class JSONFileChatStorage(ChatStorage):
    """JSON-document chat storage.

    Writes go to a temporary file that replaces the document in one step,
    so a crash mid-write never leaves a truncated file behind. A document
    that cannot be parsed is moved aside to ``<name>.corrupt`` and the
    store starts empty.
    """

    def __init__(self, path: str | Path = DEFAULT_PATH, debug_callback=None):
        self._path = Path(path).expanduser()
        self._debug_callback = debug_callback

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[Chat]:
        if not self._path.exists():
            return []

        raw = self._path.read_bytes()
        if not raw.strip():
            return []

        try:
            return load_chats(raw.decode("utf-8"))
        except (ValidationError, json.JSONDecodeError, UnicodeDecodeError) as e:
            corrupt = self._path.with_name(self._path.name + ".corrupt")
            os.replace(self._path, corrupt)
            if self._debug_callback:
                self._debug_callback(
                    "warning", "Storage",
                    f"Unreadable chat file moved to {corrupt}: {str(e)[:120]}"
                )
            return []

    def save(self, chats: list[Chat]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(dump_chats(chats), encoding="utf-8")
        os.replace(tmp, self._path)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)

    @property
    def backend_type(self) -> str:
        return "json"
