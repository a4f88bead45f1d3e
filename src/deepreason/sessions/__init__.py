"""Chat session module for deepreason.

Provides the session manager and durable chat storage backends.
"""

from .base import ChatStorage
from .factory import create_chat_storage
from .manager import SessionManager

__all__ = [
    "ChatStorage",
    "SessionManager",
    "create_chat_storage",
]
