"""
deepreason: A terminal chat client for dual-model reasoning APIs.

Streams a reasoning trace and a final answer over one event stream,
keeps named chats on disk, and renders long conversations in a
virtualized view. Each module hides a single design decision.
"""

__version__ = "0.1.0"

from .chat import Chat, ConversationStore, Message
from .client import ReasoningAPIClient, build_chat_request
from .context import ChatContext
from .controller import ChatController, TurnOutcome
from .errors import DeepReasonError, RemoteStreamError, TransportError
from .render import RenderScheduler
from .sessions import SessionManager, create_chat_storage

__all__ = [
    "Chat",
    "ChatContext",
    "ChatController",
    "ConversationStore",
    "DeepReasonError",
    "Message",
    "ReasoningAPIClient",
    "RemoteStreamError",
    "RenderScheduler",
    "SessionManager",
    "TransportError",
    "TurnOutcome",
    "build_chat_request",
    "create_chat_storage",
]
