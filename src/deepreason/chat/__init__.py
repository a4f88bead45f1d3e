from .models import NEW_CHAT_TITLE, Chat, Message, derive_title
from .store import ConversationStore

__all__ = [
    "NEW_CHAT_TITLE",
    "Chat",
    "ConversationStore",
    "Message",
    "derive_title",
]
