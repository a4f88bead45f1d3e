"""Abstract base class for chat storage backends.

This module defines the interface for durable chat storage.
The abstraction hides:
- Storage format (JSON document, SQLite row, in-memory)
- Persistence location
- How a whole chat set is written atomically

Backends store the complete chat set as one record, read once at
startup and rewritten after every mutation.
"""

from abc import ABC, abstractmethod

from pydantic import TypeAdapter

from ..chat.models import Chat

STORAGE_KEY = "deepreasoning-chats"

_CHAT_LIST = TypeAdapter(list[Chat])


def dump_chats(chats: list[Chat]) -> str:
    """Serialize a chat set to its persisted JSON text."""
    return _CHAT_LIST.dump_json(chats, exclude_none=True).decode("utf-8")


def load_chats(raw: str | bytes) -> list[Chat]:
    """Parse persisted JSON text into chats.

    Raises:
        pydantic.ValidationError: If the text is not a valid chat set
    """
    return _CHAT_LIST.validate_json(raw)


class ChatStorage(ABC):
    """Abstract chat storage backend.

    Provides a unified interface for loading and saving the chat set
    across different storage backends.
    """

    @abstractmethod
    def load(self) -> list[Chat]:
        """Read the stored chat set. Returns [] when nothing is stored."""

    @abstractmethod
    def save(self, chats: list[Chat]) -> None:
        """Replace the stored chat set with ``chats``."""

    @abstractmethod
    def clear(self) -> None:
        """Remove the stored chat set entirely."""

    def close(self) -> None:
        """Release any open resources."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
