"""HTTP client for the dual-model reasoning API.

Hides the request contract (headers, body layout, provider passthrough
blocks) and the streaming transport. Callers get an async iterator of raw
byte chunks and never see httpx directly.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .chat.models import Message
from .errors import TransportError

DEFAULT_API_URL = "https://api.deepreasoning.com"
DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
ANTHROPIC_VERSION = "2023-06-01"

SUPPORTED_MODELS = (
    "claude-3-5-sonnet-20241022",
    "claude-3-5-sonnet-latest",
    "claude-3-5-haiku-20241022",
    "claude-3-5-haiku-latest",
    "claude-3-opus-20240229",
    "claude-3-opus-latest",
)

DEEPSEEK_TOKEN_HEADER = "X-DeepSeek-API-Token"
ANTHROPIC_TOKEN_HEADER = "X-Anthropic-API-Token"


class ProviderConfig(BaseModel):
    """Headers and body fields passed through to one upstream provider."""

    headers: dict[str, str] = Field(default_factory=dict)
    body: dict[str, Any] = Field(default_factory=dict)


class RequestMessage(BaseModel):
    """A role/content pair as sent on the wire."""

    model_config = ConfigDict(frozen=True)

    role: str
    content: str


class ChatRequest(BaseModel):
    """Body of a streaming chat request."""

    stream: bool = True
    system: str | None = None
    verbose: bool = False
    messages: list[RequestMessage]
    deepseek_config: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic_config: ProviderConfig = Field(default_factory=ProviderConfig)


def build_chat_request(
    messages: Sequence[Message],
    model: str = DEFAULT_MODEL,
    system: str | None = None,
    temperature: float = 0,
) -> ChatRequest:
    """Build the request body for a conversation.

    Args:
        messages: Full prior conversation plus the new user message
        model: Anthropic model used for the final answer
        system: System prompt
        temperature: Sampling temperature for both providers

    Returns:
        The request body; thinking text is never included
    """
    return ChatRequest(
        system=system,
        messages=[RequestMessage(**m.to_request_dict()) for m in messages],
        deepseek_config=ProviderConfig(body={"temperature": temperature}),
        anthropic_config=ProviderConfig(
            headers={"anthropic-version": ANTHROPIC_VERSION},
            body={"temperature": temperature, "model": model},
        ),
    )


class ReasoningAPIClient:
    """Streaming client for the reasoning API.

    Supports async context manager protocol for proper resource cleanup:
        async with ReasoningAPIClient(deepseek_token, anthropic_token) as client:
            async with client.stream(request) as chunks:
                async for chunk in chunks:
                    ...
    """

    def __init__(
        self,
        deepseek_api_token: str,
        anthropic_api_token: str,
        api_url: str = DEFAULT_API_URL,
        **client_kwargs: Any
    ):
        """Initialize the client.

        Args:
            deepseek_api_token: Token forwarded to the reasoning model
            anthropic_api_token: Token forwarded to the answer model
            api_url: Endpoint receiving the POST
            **client_kwargs: Additional kwargs for httpx.AsyncClient
        """
        self._deepseek_api_token = deepseek_api_token
        self._anthropic_api_token = anthropic_api_token
        self._api_url = api_url
        # Streams may legitimately stall for a long time while reasoning
        client_kwargs.setdefault("timeout", httpx.Timeout(30.0, read=None))
        self._client = httpx.AsyncClient(**client_kwargs)

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def has_credentials(self) -> bool:
        """True when both provider tokens are set."""
        return bool(self._deepseek_api_token and self._anthropic_api_token)

    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            DEEPSEEK_TOKEN_HEADER: self._deepseek_api_token,
            ANTHROPIC_TOKEN_HEADER: self._anthropic_api_token,
        }

    @asynccontextmanager
    async def stream(self, request: ChatRequest) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a streaming POST and yield its byte chunks.

        Raises:
            TransportError: On connection failures and non-2xx responses
        """
        try:
            async with self._client.stream(
                "POST",
                self._api_url,
                headers=self.headers(),
                json=request.model_dump(mode="json"),
            ) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise TransportError(
                        f"API returned {response.status_code}: {body[:200]}",
                        status_code=response.status_code,
                    )
                yield response.aiter_bytes()
        except httpx.HTTPError as e:
            raise TransportError(f"Request failed: {e}") from e

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "ReasoningAPIClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
