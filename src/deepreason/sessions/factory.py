"""Factory for creating chat storage backends."""

from typing import Any

from .base import ChatStorage


def create_chat_storage(
    backend: str = "json",
    **kwargs: Any
) -> ChatStorage:
    """Create a chat storage backend.

    Args:
        backend: Backend type ("json", "sqlite" or "memory")
        **kwargs: Backend-specific configuration
            For json / sqlite:
                - path: str | Path
                - debug_callback: callable(level, component, message)

    Returns:
        ChatStorage instance

    Raises:
        ValueError: If backend type is not supported
    """
    backend = backend.lower()

    if backend == "memory":
        from .in_memory import InMemoryChatStorage
        return InMemoryChatStorage()

    elif backend == "json":
        from .json_file import JSONFileChatStorage
        return JSONFileChatStorage(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteChatStorage
        return SQLiteChatStorage(**kwargs)

    raise ValueError(
        f"Unsupported storage backend: {backend}. "
        f"Supported backends: json, sqlite, memory"
    )
