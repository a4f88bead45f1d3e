"""Data models for chats and their messages.

These models define the persisted shape of a conversation,
independent of the storage backend used.
"""

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

NEW_CHAT_TITLE = "New Chat"
TITLE_LENGTH = 20


def derive_title(first_message: str) -> str:
    """Build a chat title from the first user message."""
    return first_message[:TITLE_LENGTH]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """A single chat message.

    Messages are frozen; streaming updates replace the last message with a
    new snapshot rather than mutating it.
    """

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"] = Field(description="Role of the message sender")
    content: str = Field(default="", description="Visible message text")
    thinking: str | None = Field(
        default=None,
        description="Reasoning trace (assistant messages only)"
    )

    @model_validator(mode="after")
    def _user_has_no_thinking(self) -> "Message":
        if self.role == "user" and self.thinking is not None:
            raise ValueError("user messages cannot carry thinking")
        return self

    def same_text(self, other: "Message") -> bool:
        """True when content and thinking are equal."""
        return self.content == other.content and self.thinking == other.thinking

    def to_request_dict(self) -> dict[str, str]:
        """Role/content pair sent to the API. Thinking is never sent back."""
        return {"role": self.role, "content": self.content}


class Chat(BaseModel):
    """A named conversation with its ordered messages."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = Field(default=NEW_CHAT_TITLE)
    timestamp: datetime = Field(default_factory=_utcnow, description="Creation time")
    messages: list[Message] = Field(default_factory=list)

    def first_user_message(self) -> Message | None:
        for message in self.messages:
            if message.role == "user":
                return message
        return None

    def to_storage_dict(self) -> dict:
        """Serialize to the persisted JSON shape."""
        return self.model_dump(mode="json", exclude_none=True)
