"""In-memory chat storage backend.

Keeps the serialized chat set in a string.
Data is lost when the application exits.
"""

from ..chat.models import Chat
from .base import ChatStorage, dump_chats, load_chats


class InMemoryChatStorage(ChatStorage):
    """In-memory chat storage (session-only).

    Stores the serialized form rather than the objects so a reload
    produces independent copies, exactly like a durable backend would.
    """

    def __init__(self) -> None:
        self._raw: str | None = None

    def load(self) -> list[Chat]:
        if self._raw is None:
            return []
        return load_chats(self._raw)

    def save(self, chats: list[Chat]) -> None:
        self._raw = dump_chats(chats)

    def clear(self) -> None:
        self._raw = None

    @property
    def backend_type(self) -> str:
        return "memory"
