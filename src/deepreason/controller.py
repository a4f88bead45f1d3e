"""Chat controller: runs one assistant turn from user input to final message.

Orchestrates the pipeline
    submit -> session -> request -> transport reader -> event parser
    -> phase classifier / turn accumulator -> conversation store
and owns the per-request cancellation token. All state it touches lives in
the explicit ChatContext it is given.
"""

import asyncio
from enum import Enum
from typing import Any

from .chat.models import Chat
from .client import DEFAULT_MODEL, ReasoningAPIClient, build_chat_request
from .context import ChatContext
from .errors import DeepReasonError, RemoteStreamError, TransportError
from .stream.events import ErrorEvent, parse_event_line
from .stream.phase import TurnAccumulator
from .stream.reader import CancellationToken, iter_lines


class TurnOutcome(str, Enum):
    """How a submitted message ended."""

    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ChatController:
    """Submits user messages and streams the assistant's reply into the store.

    Usage:
        controller = ChatController(context, client, system_prompt=prompt)
        outcome = await controller.submit("Why is the sky blue?")
    """

    def __init__(
        self,
        context: ChatContext,
        client: ReasoningAPIClient,
        model: str = DEFAULT_MODEL,
        system_prompt: str | None = None,
        debug_callback: Any | None = None,
    ) -> None:
        self._context = context
        self._client = client
        self.model = model
        self._system_prompt = system_prompt
        self._debug_callback = debug_callback
        self._token: CancellationToken | None = None
        self._turn_task: asyncio.Task | None = None

    @property
    def context(self) -> ChatContext:
        return self._context

    def set_debug_callback(self, callback: Any) -> None:
        """Set the callback used for detailed logging.

        Args:
            callback: Callable(level: str, component: str, message: str)
        """
        self._debug_callback = callback
        self._context.sessions.set_debug_callback(callback)

    def _debug(self, level: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, "Controller", message)

    async def submit(self, text: str) -> TurnOutcome:
        """Send a user message and stream the assistant's answer.

        Rejected without side effects while a turn is loading, for blank
        input, or when credentials are missing.

        Returns:
            The outcome of the turn
        """
        if self._context.loading:
            self._debug("warning", "Rejected message: a response is still streaming")
            return TurnOutcome.REJECTED
        if not text.strip():
            return TurnOutcome.REJECTED
        if not self._client.has_credentials:
            self._debug("warning", "Rejected message: API tokens are not configured")
            return TurnOutcome.REJECTED

        sessions = self._context.sessions
        store = self._context.store
        sessions.ensure_active_chat()

        store.append_user_message(text)
        request = build_chat_request(store.messages, model=self.model, system=self._system_prompt)

        self.cancel()
        token = CancellationToken()
        self._token = token
        self._turn_task = asyncio.current_task()
        self._context.begin_turn()
        self._debug("info", f"Sending {len(request.messages)} message(s) to {self.model}")

        try:
            completed = await self._stream_turn(request, token)
        except DeepReasonError as e:
            self._debug("error", str(e))
            self._context.end_turn(error=str(e))
            return TurnOutcome.FAILED
        except asyncio.CancelledError:
            self._debug("info", "Turn cancelled")
            self._context.end_turn()
            raise
        finally:
            if self._token is token:
                self._token = None
                self._turn_task = None

        self._context.end_turn()
        if not completed:
            self._debug("info", "Turn cancelled")
            return TurnOutcome.CANCELLED
        return TurnOutcome.COMPLETED

    async def _stream_turn(self, request, token: CancellationToken) -> bool:
        """Read the response stream into the store.

        Returns:
            True if the turn reached its done event, False if cancelled

        Raises:
            TransportError: If the stream fails or ends early
        """
        store = self._context.store
        accumulator = TurnAccumulator(on_reasoning_finalized=self._context.finish_thinking)

        async with self._client.stream(request) as chunks:
            async for line in iter_lines(chunks, token):
                event = parse_event_line(line, self._debug_callback)
                if event is None:
                    continue
                if isinstance(event, ErrorEvent):
                    raise RemoteStreamError(
                        f"Server error: {event.message or 'unknown error'}",
                        status_code=event.code,
                    )
                if accumulator.apply(event):
                    store.append_or_update_assistant_turn(accumulator.snapshot())
                if accumulator.usage is not None:
                    self._context.usage = accumulator.usage
                if accumulator.done:
                    return True

        if token.cancelled:
            return False
        raise TransportError("Stream ended before the turn completed")

    def cancel(self) -> bool:
        """Abort the turn in flight, dropping anything not yet processed.

        Returns:
            True if a turn was in flight
        """
        token, task = self._token, self._turn_task
        if token is None:
            return False
        token.cancel()
        self._token = None
        self._turn_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        return True

    # Session operations; switching away abandons any turn in flight

    def new_chat(self) -> Chat:
        self.cancel()
        return self._context.sessions.create_chat()

    def select_chat(self, chat_id: str) -> Chat:
        self.cancel()
        return self._context.sessions.select_chat(chat_id)

    def delete_chat(self, chat_id: str) -> bool:
        if chat_id == self._context.sessions.active_chat_id:
            self.cancel()
        return self._context.sessions.delete_chat(chat_id)

    def clear_all(self) -> None:
        self.cancel()
        self._context.sessions.clear_all()
