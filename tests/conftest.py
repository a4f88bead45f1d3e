"""Pytest configuration and shared fixtures."""
import json

import httpx
import pytest
import pytest_asyncio

from deepreason.client import ReasoningAPIClient
from deepreason.context import ChatContext
from deepreason.controller import ChatController
from deepreason.sessions import SessionManager, create_chat_storage

API_URL = "https://api.test/chat"


def sse(event: dict) -> str:
    """One server-sent event line for an event payload."""
    return f"data: {json.dumps(event)}\n\n"


def text(value: str) -> dict:
    return {"type": "text", "text": value}


def delta(value: str) -> dict:
    return {"type": "text_delta", "text": value}


def content(*fragments: dict) -> dict:
    return {"type": "content", "content": list(fragments)}


START = {"type": "start", "created": "2025-01-01T00:00:00Z"}
DONE = {"type": "done"}


def reasoning_stream(thinking: list[str], answer: list[str]) -> list[dict]:
    """Events of a well-formed turn: start, reasoning, sentinels, answer, done."""
    events = [START, content(text("<thinking>"))]
    events += [content(delta(part)) for part in thinking]
    events.append(content(text("</thinking>")))
    events += [content(delta(part)) for part in answer]
    events.append(DONE)
    return events


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    """Session-only chat storage."""
    return create_chat_storage("memory")


@pytest.fixture
def sessions(storage):
    manager = SessionManager(storage)
    manager.load()
    return manager


@pytest.fixture
def context(sessions, clock):
    ctx = ChatContext(sessions, clock=clock)
    yield ctx
    ctx.close()


class RecordingHandler:
    """httpx MockTransport handler that replays a scripted body.

    ``chunks`` are sent as separate network chunks, so tests control
    exactly where the stream is cut.
    """

    def __init__(self, chunks: list[bytes] | None = None, status_code: int = 200) -> None:
        self.chunks = chunks or []
        self.status_code = status_code
        self.requests: list[httpx.Request] = []
        self.on_chunk = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self._body())

    async def _body(self):
        for index, chunk in enumerate(self.chunks):
            if self.on_chunk is not None:
                await self.on_chunk(index)
            yield chunk

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def handler():
    return RecordingHandler()


def make_client(handler, deepseek: str = "ds-token", anthropic: str = "an-token") -> ReasoningAPIClient:
    return ReasoningAPIClient(
        deepseek_api_token=deepseek,
        anthropic_api_token=anthropic,
        api_url=API_URL,
        transport=httpx.MockTransport(handler),
    )


@pytest_asyncio.fixture
async def client(handler):
    api_client = make_client(handler)
    yield api_client
    await api_client.close()


@pytest.fixture
def controller(context, client):
    return ChatController(context, client, system_prompt="Be helpful.")


def script(handler: RecordingHandler, events: list[dict], split_every: int | None = None) -> None:
    """Load ``events`` into ``handler`` as SSE, optionally cut every N bytes."""
    body = "".join(sse(e) for e in events).encode("utf-8")
    if split_every is None:
        handler.chunks = [body]
    else:
        handler.chunks = [body[i:i + split_every] for i in range(0, len(body), split_every)]
