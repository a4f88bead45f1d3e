"""Event parser for the reasoning API's server-sent event stream.

Hides the wire framing: which lines carry payloads, how payloads are
decoded, and which event kinds are understood. Anything the parser does
not recognize is dropped so a single bad line never aborts a turn.
"""

import json
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

DATA_PREFIX = "data:"

TEXT = "text"
TEXT_DELTA = "text_delta"


class ContentFragment(BaseModel):
    """One unit of text inside a content event.

    ``type`` is kept open so unknown fragment kinds survive parsing and
    can be ignored downstream instead of invalidating the whole event.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str = Field(description="Fragment kind: 'text' or 'text_delta'")
    text: str = Field(default="", description="Literal text carried by the fragment")


class StartEvent(BaseModel):
    """A turn has begun."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["start"]
    created: datetime | None = Field(default=None, description="Server creation time")


class ContentEvent(BaseModel):
    """An ordered batch of text fragments."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["content"]
    content: list[ContentFragment] = Field(default_factory=list)


class UsageEvent(BaseModel):
    """Token usage reported by the server, passed through for display."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["usage"]
    usage: dict[str, Any] = Field(default_factory=dict)


class ErrorEvent(BaseModel):
    """The server failed mid-stream."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["error"]
    message: str = ""
    code: int | None = None


class DoneEvent(BaseModel):
    """The turn is complete. Terminal."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["done"]


StreamEvent = Annotated[
    StartEvent | ContentEvent | UsageEvent | ErrorEvent | DoneEvent,
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)

EVENT_KINDS = frozenset({"start", "content", "usage", "error", "done"})


def parse_event_line(line: str, debug_callback: Any | None = None) -> StreamEvent | None:
    """Decode one stream line into a typed event.

    Args:
        line: A complete line from the transport reader
        debug_callback: Optional callable(level, component, message) told
            about dropped payloads

    Returns:
        The parsed event, or None for blank lines, non-data lines,
        malformed payloads and unknown event kinds
    """
    if not line.strip() or not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX):]
    if payload.startswith(" "):
        payload = payload[1:]

    def _drop(reason: str) -> None:
        if debug_callback:
            debug_callback("debug", "Parser", f"Dropped line ({reason}): {payload[:80]}")

    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        _drop("invalid JSON")
        return None

    if not isinstance(data, dict):
        _drop("not an object")
        return None

    if data.get("type") not in EVENT_KINDS:
        _drop(f"unknown event {data.get('type')!r}")
        return None

    try:
        return _EVENT_ADAPTER.validate_python(data)
    except ValidationError:
        _drop("schema mismatch")
        return None
