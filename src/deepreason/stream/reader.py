"""Transport reader: turns a chunked byte stream into complete text lines.

Hides how network chunks are decoded and re-assembled so that the event
parser only ever sees whole lines, regardless of where the transport
happened to cut the stream.
"""

import codecs
from collections.abc import AsyncIterable, AsyncIterator

import httpx

from ..errors import TransportError


class CancellationToken:
    """Per-request cancellation flag checked each time a read resumes."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class LineBuffer:
    """Carry-over buffer for partial lines between chunks.

    Usage:
        buffer = LineBuffer()
        buffer.feed("data: {\\"ty")   # -> []
        buffer.feed("pe\\": 1}\\n")    # -> ['data: {"type": 1}']
        buffer.flush()               # -> None
    """

    def __init__(self) -> None:
        self._carry = ""

    def feed(self, text: str) -> list[str]:
        """Add decoded text and return every line it completes.

        Args:
            text: Decoded text from one network chunk

        Returns:
            Complete lines, without their line terminators
        """
        if not text:
            return []

        parts = (self._carry + text).split("\n")
        # The last part is either empty or an unterminated line
        self._carry = parts.pop()
        return [part.removesuffix("\r") for part in parts]

    def flush(self) -> str | None:
        """Return the trailing partial line, if any, and reset the buffer."""
        rest = self._carry.removesuffix("\r")
        self._carry = ""
        return rest or None

    @property
    def pending(self) -> str:
        """Text received since the last line terminator."""
        return self._carry


async def iter_lines(
    chunks: AsyncIterable[bytes],
    token: CancellationToken | None = None,
    encoding: str = "utf-8",
) -> AsyncIterator[str]:
    """Yield complete lines from an async stream of byte chunks.

    Each call owns a fresh decoder and line buffer. Multi-byte characters
    split across chunks are decoded correctly. When the stream ends, any
    unterminated trailing text is yielded as a final line.

    Args:
        chunks: Async iterable of raw bytes (e.g. httpx ``aiter_bytes()``)
        token: Optional cancellation token; once cancelled no more lines
            are yielded
        encoding: Text encoding of the stream

    Yields:
        Lines without terminators

    Raises:
        TransportError: If reading from the underlying stream fails
    """
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    buffer = LineBuffer()

    try:
        async for chunk in chunks:
            if token is not None and token.cancelled:
                return
            for line in buffer.feed(decoder.decode(chunk)):
                yield line
                if token is not None and token.cancelled:
                    return
    except (httpx.HTTPError, OSError) as e:
        raise TransportError(f"Stream read failed: {e}") from e

    if token is not None and token.cancelled:
        return

    for line in buffer.feed(decoder.decode(b"", final=True)):
        yield line
    rest = buffer.flush()
    if rest is not None:
        yield rest
