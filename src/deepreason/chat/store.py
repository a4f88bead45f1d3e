"""Conversation store: the visible message list of the active chat.

Hides how streaming snapshots are merged into the message list and when
observers are told about it. The store never touches any chat field other
than ``messages``; persistence and titles are the session manager's job.
"""

from collections.abc import Callable

from .models import Chat, Message

ChangeListener = Callable[[list[Message]], None]
DirtyCallback = Callable[[Chat], None]


class ConversationStore:
    """Ordered messages of the active chat with change detection.

    Usage:
        store = ConversationStore(on_dirty=sessions.mark_dirty)
        store.bind(chat)
        store.append_user_message("Hello")
        store.append_or_update_assistant_turn(snapshot)
    """

    def __init__(self, on_dirty: DirtyCallback | None = None) -> None:
        self._chat: Chat | None = None
        self._detached: list[Message] = []
        self._on_dirty = on_dirty
        self._listeners: list[ChangeListener] = []

    @property
    def chat(self) -> Chat | None:
        """The chat whose messages this store currently shows."""
        return self._chat

    @property
    def messages(self) -> list[Message]:
        """The visible message list (read-only copy)."""
        return list(self._list)

    @property
    def _list(self) -> list[Message]:
        return self._chat.messages if self._chat is not None else self._detached

    def __len__(self) -> int:
        return len(self._list)

    def set_dirty_callback(self, callback: DirtyCallback | None) -> None:
        self._on_dirty = callback

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def bind(self, chat: Chat | None) -> None:
        """Show ``chat``'s messages, replacing the visible list wholesale."""
        self._chat = chat
        self._detached = []
        self._notify()

    def append_user_message(self, text: str) -> Message:
        """Append a new user message. Always mutates."""
        message = Message(role="user", content=text)
        self._list.append(message)
        self._changed()
        return message

    def append_or_update_assistant_turn(self, snapshot: Message) -> bool:
        """Publish the latest snapshot of the assistant turn in flight.

        If the last message is an assistant message it is replaced, but
        only when its text actually differs; otherwise a new message is
        appended.

        Returns:
            True if the list changed
        """
        messages = self._list
        if messages and messages[-1].role == "assistant":
            if messages[-1].same_text(snapshot):
                return False
            messages[-1] = snapshot
        else:
            messages.append(snapshot)
        self._changed()
        return True

    def clear(self) -> None:
        """Detach from any chat and show an empty list."""
        self.bind(None)

    def _changed(self) -> None:
        if self._chat is not None and self._on_dirty is not None:
            self._on_dirty(self._chat)
        self._notify()

    def _notify(self) -> None:
        snapshot = self.messages
        for listener in list(self._listeners):
            listener(snapshot)
