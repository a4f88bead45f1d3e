"""Session manager: the set of chats, the active chat, and persistence.

Hides chat lifecycle rules (creation, switching, deletion, titles) and
when the chat set is written to storage. The conversation store is bound
to whichever chat is active.
"""

import sqlite3
from collections.abc import Callable
from typing import Any

from ..chat.models import NEW_CHAT_TITLE, Chat, derive_title
from ..chat.store import ConversationStore
from .base import ChatStorage

SessionListener = Callable[["SessionManager"], None]


class SessionManager:
    """Owns every chat and decides which one is active.

    Usage:
        sessions = SessionManager(create_chat_storage("json"))
        sessions.load()              # restores chats, starts a fresh one
        sessions.store.append_user_message("Hi")
        sessions.select_chat(other_id)
    """

    def __init__(
        self,
        storage: ChatStorage,
        store: ConversationStore | None = None,
        debug_callback: Any | None = None,
    ) -> None:
        self._storage = storage
        self._store = store or ConversationStore()
        self._store.set_dirty_callback(self.mark_dirty)
        self._chats: list[Chat] = []
        self._active_chat_id: str | None = None
        self._listeners: list[SessionListener] = []
        self._debug_callback = debug_callback

    @property
    def store(self) -> ConversationStore:
        return self._store

    @property
    def storage(self) -> ChatStorage:
        return self._storage

    @property
    def chats(self) -> list[Chat]:
        """All chats in creation order."""
        return list(self._chats)

    @property
    def active_chat_id(self) -> str | None:
        return self._active_chat_id

    @property
    def active_chat(self) -> Chat | None:
        if self._active_chat_id is None:
            return None
        return self.get_chat(self._active_chat_id)

    def get_chat(self, chat_id: str) -> Chat | None:
        for chat in self._chats:
            if chat.id == chat_id:
                return chat
        return None

    def set_debug_callback(self, callback: Any) -> None:
        self._debug_callback = callback

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener called after any change to the chat set."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def load(self, start_new: bool = True) -> Chat | None:
        """Restore stored chats, then create and activate a fresh chat.

        The application always starts on a new chat even when earlier
        chats exist. Maintenance commands pass ``start_new=False`` to
        inspect the stored set without adding to it.

        Returns:
            The newly created active chat, or None if none was created
        """
        try:
            self._chats = self._storage.load()
        except (OSError, sqlite3.Error) as e:
            self._debug("error", f"Could not load chats: {e}")
            self._chats = []

        self._debug("info", f"Loaded {len(self._chats)} chat(s) from {self._storage.backend_type}")
        if not start_new:
            self._notify()
            return None
        return self.create_chat()

    def create_chat(self, title: str = NEW_CHAT_TITLE) -> Chat:
        """Create an empty chat and make it active."""
        chat = Chat(title=title)
        self._chats.append(chat)
        self._active_chat_id = chat.id
        self._store.bind(chat)
        self._debug("debug", f"Created chat {chat.id}")
        self._changed()
        return chat

    def ensure_active_chat(self) -> Chat:
        """Return the active chat, creating one if none is active."""
        chat = self.active_chat
        if chat is None:
            chat = self.create_chat()
        return chat

    def select_chat(self, chat_id: str) -> Chat:
        """Switch the active chat, replacing the visible messages wholesale.

        Raises:
            KeyError: If no chat has this id
        """
        chat = self.get_chat(chat_id)
        if chat is None:
            raise KeyError(f"Unknown chat: {chat_id}")

        self._active_chat_id = chat.id
        self._store.bind(chat)
        self._notify()
        return chat

    def delete_chat(self, chat_id: str) -> bool:
        """Remove a chat. Deleting the active chat leaves none active.

        Returns:
            True if a chat was removed
        """
        chat = self.get_chat(chat_id)
        if chat is None:
            return False

        self._chats.remove(chat)
        if self._active_chat_id == chat_id:
            self._active_chat_id = None
            self._store.clear()

        self._debug("debug", f"Deleted chat {chat_id}")
        self._changed()
        return True

    def clear_all(self) -> None:
        """Remove every chat and the stored chat set."""
        count = len(self._chats)
        self._chats = []
        self._active_chat_id = None
        self._store.clear()

        try:
            self._storage.clear()
        except (OSError, sqlite3.Error) as e:
            self._debug("error", f"Could not clear storage: {e}")

        self._debug("info", f"Cleared {count} chat(s)")
        self._notify()

    def mark_dirty(self, chat: Chat) -> None:
        """Record that ``chat``'s messages changed.

        Derives the title from the first user message the first time one
        exists, then persists the chat set.
        """
        if chat.title == NEW_CHAT_TITLE:
            first = chat.first_user_message()
            if first is not None:
                chat.title = derive_title(first.content)
        self._changed()

    def _changed(self) -> None:
        self._persist()
        self._notify()

    def _persist(self) -> None:
        try:
            self._storage.save(self._chats)
        except (OSError, sqlite3.Error) as e:
            # In-memory chats stay authoritative for this session
            self._debug("error", f"Could not save chats: {e}")

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _debug(self, level: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, "Sessions", message)
