"""Integration tests for the chat controller and chat context.

These drive the full pipeline (request -> reader -> parser -> accumulator
-> store -> sessions) against an httpx MockTransport.
"""
import asyncio

import pytest
from conftest import (
    DONE,
    START,
    RecordingHandler,
    content,
    delta,
    make_client,
    reasoning_stream,
    script,
    sse,
    text,
)

from deepreason.context import ChatContext
from deepreason.controller import ChatController, TurnOutcome
from deepreason.sessions import SessionManager


class TestSubmit:
    """Tests for ChatController.submit."""

    @pytest.mark.asyncio
    async def test_complete_turn(self, controller, context, handler, storage):
        script(handler, reasoning_stream(["Let me ", "think."], ["The answer", " is 42."]))

        outcome = await controller.submit("What is the answer?")

        assert outcome is TurnOutcome.COMPLETED
        messages = context.store.messages
        assert [m.role for m in messages] == ["user", "assistant"]
        assert messages[1].thinking == "Let me think."
        assert messages[1].content == "The answer is 42."
        assert not context.loading
        assert context.last_error is None
        assert context.thinking_complete

        stored = storage.load()[-1]
        assert stored.title == "What is the answer?"
        assert stored.messages[1].content == "The answer is 42."

    @pytest.mark.asyncio
    async def test_stream_cut_at_every_byte(self, controller, context, handler):
        script(handler, reasoning_stream(["Ünïcödé ", "✓"], ["done ", "✓"]), split_every=1)

        assert await controller.submit("go") is TurnOutcome.COMPLETED

        assert context.store.messages[-1].thinking == "Ünïcödé ✓"
        assert context.store.messages[-1].content == "done ✓"

    @pytest.mark.asyncio
    async def test_request_carries_history_without_thinking(self, controller, handler):
        script(handler, reasoning_stream(["first thoughts"], ["First answer"]))
        await controller.submit("One")
        script(handler, reasoning_stream(["more"], ["Second answer"]))
        await controller.submit("Two")

        body = handler.last_json
        assert body["messages"] == [
            {"role": "user", "content": "One"},
            {"role": "assistant", "content": "First answer"},
            {"role": "user", "content": "Two"},
        ]
        assert body["system"] == "Be helpful."
        assert body["stream"] is True

    @pytest.mark.asyncio
    async def test_assistant_message_appears_on_start(self, controller, context, handler):
        seen = []
        context.store.subscribe(lambda messages: seen.append([m.role for m in messages]))
        script(handler, [START, DONE])

        await controller.submit("Hi")

        assert seen[0] == ["user"]
        assert seen[1] == ["user", "assistant"]
        assert context.store.messages[-1].content == ""

    @pytest.mark.asyncio
    async def test_unparseable_lines_are_skipped(self, controller, context, handler):
        handler.chunks = [
            b": keep-alive\n\n",
            sse(START).encode(),
            b"data: {garbage\n\n",
            b'data: {"type": "mystery"}\n\n',
            sse(content(text("</thinking>"), delta("ok"))).encode(),
            sse(DONE).encode(),
        ]

        assert await controller.submit("Hi") is TurnOutcome.COMPLETED
        assert context.store.messages[-1].content == "ok"

    @pytest.mark.asyncio
    async def test_usage_is_exposed_on_context(self, controller, context, handler):
        usage = {"total_cost": "$0.001", "anthropic_usage": {"input_tokens": 3, "output_tokens": 4}}
        script(handler, [START, {"type": "usage", "usage": usage}, DONE])

        await controller.submit("Hi")

        assert context.usage == usage

    @pytest.mark.asyncio
    async def test_rejected_while_loading(self, controller, context, handler):
        context.loading = True

        assert await controller.submit("Hi") is TurnOutcome.REJECTED
        assert context.store.messages == []
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_blank_input_is_rejected(self, controller, context, handler):
        assert await controller.submit("   \n") is TurnOutcome.REJECTED
        assert context.store.messages == []

    @pytest.mark.asyncio
    async def test_missing_tokens_are_rejected(self, context):
        handler = RecordingHandler()
        client = make_client(handler, anthropic="")
        controller = ChatController(context, client)

        assert await controller.submit("Hi") is TurnOutcome.REJECTED
        assert context.store.messages == []
        assert handler.requests == []
        await client.close()

    @pytest.mark.asyncio
    async def test_submit_without_active_chat_creates_one(self, controller, context, handler, sessions):
        sessions.delete_chat(sessions.active_chat_id)
        script(handler, reasoning_stream([], ["fresh"]))

        assert await controller.submit("New topic") is TurnOutcome.COMPLETED
        assert sessions.active_chat.title == "New topic"
        assert len(sessions.chats) == 1


class TestFailures:
    """Tests for failed turns."""

    @pytest.mark.asyncio
    async def test_http_error_status(self, controller, context, handler):
        handler.status_code = 500
        handler.chunks = [b"upstream down"]

        assert await controller.submit("Hi") is TurnOutcome.FAILED
        assert "500" in context.last_error
        assert not context.loading
        assert [m.role for m in context.store.messages] == ["user"]

    @pytest.mark.asyncio
    async def test_error_event_keeps_partial_answer(self, controller, context, handler):
        script(handler, [
            START,
            content(text("</thinking>"), delta("Partial")),
            {"type": "error", "message": "overloaded", "code": 529},
            content(delta(" never shown")),
        ])

        assert await controller.submit("Hi") is TurnOutcome.FAILED
        assert "overloaded" in context.last_error
        assert context.store.messages[-1].content == "Partial"

    @pytest.mark.asyncio
    async def test_stream_ending_without_done_fails(self, controller, context, handler):
        script(handler, [START, content(text("</thinking>"), delta("Half"))])

        assert await controller.submit("Hi") is TurnOutcome.FAILED
        assert "ended" in context.last_error
        assert context.store.messages[-1].content == "Half"

    @pytest.mark.asyncio
    async def test_next_turn_clears_previous_error(self, controller, context, handler):
        handler.status_code = 503
        await controller.submit("Hi")
        handler.status_code = 200
        script(handler, reasoning_stream([], ["fine"]))

        assert await controller.submit("Again") is TurnOutcome.COMPLETED
        assert context.last_error is None


class TestCancellation:
    """Tests for cancelling a turn in flight."""

    @pytest.mark.asyncio
    async def test_cancel_from_inside_stream_drops_remaining_events(self, controller, context, handler):
        async def cancel_after_second_chunk(index):
            if index == 2:
                controller.cancel()

        handler.chunks = [sse(e).encode() for e in [
            START,
            content(text("</thinking>"), delta("kept")),
            content(delta(" dropped")),
            DONE,
        ]]
        handler.on_chunk = cancel_after_second_chunk

        assert await controller.submit("Hi") is TurnOutcome.CANCELLED
        assert context.store.messages[-1].content == "kept"
        assert not context.loading

    @pytest.mark.asyncio
    async def test_cancel_from_another_task(self, controller, context, handler):
        release = asyncio.Event()

        async def stall(index):
            if index == 1:
                await release.wait()

        handler.chunks = [sse(START).encode(), sse(DONE).encode()]
        handler.on_chunk = stall

        task = asyncio.create_task(controller.submit("Hi"))
        while not context.loading:
            await asyncio.sleep(0)
        await asyncio.sleep(0.01)

        assert controller.cancel() is True
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not context.loading
        assert controller.cancel() is False

    @pytest.mark.asyncio
    async def test_new_chat_abandons_turn(self, controller, context, handler, sessions):
        release = asyncio.Event()

        async def stall(index):
            if index == 1:
                await release.wait()

        handler.chunks = [sse(START).encode(), sse(DONE).encode()]
        handler.on_chunk = stall

        task = asyncio.create_task(controller.submit("Hi"))
        while not context.loading:
            await asyncio.sleep(0)
        await asyncio.sleep(0.01)
        old_chat_id = sessions.active_chat_id

        fresh = controller.new_chat()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert sessions.active_chat_id == fresh.id
        assert context.store.messages == []
        assert sessions.get_chat(old_chat_id).messages[0].content == "Hi"


class TestChatContext:
    """Tests for the reasoning timer and scheduler wiring."""

    def test_thinking_timer_freezes_when_reasoning_ends(self, context, clock):
        context.begin_turn()
        clock.advance(3.4)
        assert context.thinking_elapsed == 3
        context.finish_thinking()
        clock.advance(10)
        assert context.thinking_elapsed == 3
        assert context.thinking_complete

    def test_timer_stops_at_turn_end(self, context, clock):
        context.begin_turn()
        clock.advance(2)
        context.end_turn(error="boom")
        clock.advance(5)
        assert context.thinking_elapsed == 2
        assert context.last_error == "boom"
        assert not context.loading

    def test_no_turn_means_zero_elapsed(self, context):
        assert context.thinking_elapsed == 0
        assert not context.thinking_complete

    def test_listeners_see_lifecycle(self, context):
        seen = []
        context.subscribe(lambda ctx: seen.append(ctx.loading))
        context.begin_turn()
        context.end_turn()
        assert seen == [True, False]

    def test_store_changes_drive_scheduler(self, sessions):
        scrolled = []
        context = ChatContext(sessions)
        context.scheduler.bind_view(lambda callback: callback(), lambda: scrolled.append(True))

        sessions.store.append_user_message("Hi")

        assert context.scheduler.count == 1
        assert scrolled == [True]
        context.close()
        sessions.store.append_user_message("again")
        assert context.scheduler.count == 1

    def test_independent_contexts_do_not_share_state(self, storage):
        first = ChatContext(SessionManager(storage))
        second = ChatContext(SessionManager(storage))
        first.begin_turn()
        assert not second.loading
