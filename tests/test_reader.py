"""Unit tests for the transport reader."""
import httpx
import pytest
from hypothesis import given
from hypothesis import strategies as st

from deepreason.errors import TransportError
from deepreason.stream import CancellationToken, LineBuffer, iter_lines


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


async def _collect(chunks, token=None) -> list[str]:
    return [line async for line in iter_lines(chunks, token)]


class TestLineBuffer:
    """Tests for LineBuffer."""

    def test_complete_lines_are_returned(self):
        buffer = LineBuffer()
        assert buffer.feed("a\nb\n") == ["a", "b"]
        assert buffer.pending == ""

    def test_partial_line_is_carried(self):
        buffer = LineBuffer()
        assert buffer.feed('data: {"ty') == []
        assert buffer.pending == 'data: {"ty'
        assert buffer.feed('pe": "done"}\n') == ['data: {"type": "done"}']

    def test_crlf_terminators_are_stripped(self):
        buffer = LineBuffer()
        assert buffer.feed("one\r\ntwo\r\n") == ["one", "two"]

    def test_empty_lines_are_preserved(self):
        buffer = LineBuffer()
        assert buffer.feed("x\n\ny\n") == ["x", "", "y"]

    def test_flush_returns_unterminated_tail(self):
        buffer = LineBuffer()
        buffer.feed("tail")
        assert buffer.flush() == "tail"
        assert buffer.flush() is None

    @given(st.lists(st.text(alphabet=st.characters(exclude_characters="\r\n")), max_size=8),
           st.data())
    def test_any_cut_yields_the_same_lines(self, lines, data):
        """Property: where the text is cut never changes the lines produced."""
        joined = "".join(line + "\n" for line in lines)
        cuts = sorted(data.draw(st.lists(st.integers(0, len(joined)), max_size=6)))
        buffer = LineBuffer()
        produced = []
        start = 0
        for cut in cuts + [len(joined)]:
            produced += buffer.feed(joined[start:cut])
            start = cut
        assert produced == lines
        assert buffer.flush() is None


class TestIterLines:
    """Tests for iter_lines over byte chunks."""

    @pytest.mark.asyncio
    async def test_lines_split_across_chunks(self):
        lines = await _collect(_chunks(b"data: 1\nda", b"ta: 2", b"\n"))
        assert lines == ["data: 1", "data: 2"]

    @pytest.mark.asyncio
    async def test_multibyte_character_split_across_chunks(self):
        encoded = "data: héllo ✓\n".encode("utf-8")
        # Cut inside the three-byte check mark
        cut = encoded.index("✓".encode("utf-8")) + 1
        lines = await _collect(_chunks(encoded[:cut], encoded[cut:]))
        assert lines == ["data: héllo ✓"]

    @pytest.mark.asyncio
    async def test_unterminated_final_line_is_yielded(self):
        lines = await _collect(_chunks(b"first\n", b"last"))
        assert lines == ["first", "last"]

    @pytest.mark.asyncio
    async def test_each_call_has_its_own_buffer(self):
        assert await _collect(_chunks(b"left")) == ["left"]
        assert await _collect(_chunks(b"over\n")) == ["over"]

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_reading(self):
        token = CancellationToken()
        seen = []
        async for line in iter_lines(_chunks(b"a\nb\nc\n", b"d\n"), token):
            seen.append(line)
            token.cancel()
        assert seen == ["a"]

    @pytest.mark.asyncio
    async def test_token_cancelled_before_start_yields_nothing(self):
        token = CancellationToken()
        token.cancel()
        assert await _collect(_chunks(b"a\n"), token) == []

    @pytest.mark.asyncio
    async def test_read_failure_becomes_transport_error(self):
        async def broken():
            yield b"data: 1\n"
            raise httpx.ReadError("connection reset")

        with pytest.raises(TransportError, match="connection reset"):
            await _collect(broken())
