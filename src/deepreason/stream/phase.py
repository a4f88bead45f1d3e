"""Phase classification and per-turn accumulation.

The upstream API multiplexes its control signalling into the text channel:
a ``<thinking>`` fragment opens the reasoning trace and a fragment ending
in ``</thinking>`` closes it. This module hides that convention behind a
two-state machine and owns the buffers of the assistant turn in flight.
"""

from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any

from ..chat.models import Message
from .events import (
    TEXT,
    TEXT_DELTA,
    ContentEvent,
    ContentFragment,
    DoneEvent,
    StartEvent,
    UsageEvent,
)

OPEN_SENTINEL = "<thinking>"
CLOSE_SENTINEL = "</thinking>"


class Phase(str, Enum):
    """Which buffer incoming text belongs to."""

    REASONING = "reasoning"
    ANSWER = "answer"


class PhaseClassifier:
    """Routes text fragments to the reasoning or answer buffer.

    Sentinels are matched on whole ``text`` fragments only; the protocol
    never splits a sentinel across deltas, so deltas are always literal.
    """

    def __init__(self, on_reasoning_finalized: Callable[[], None] | None = None) -> None:
        self.phase = Phase.REASONING
        self._on_reasoning_finalized = on_reasoning_finalized

    def classify(self, fragment: ContentFragment) -> Phase | None:
        """Update the phase for a fragment and return where its text goes.

        Returns:
            The phase whose buffer receives the fragment's text, or None if
            the fragment is a sentinel or of an unknown kind
        """
        if fragment.type == TEXT:
            if fragment.text.startswith(OPEN_SENTINEL):
                self.phase = Phase.REASONING
                return None
            if fragment.text.endswith(CLOSE_SENTINEL):
                self.phase = Phase.ANSWER
                if self._on_reasoning_finalized:
                    self._on_reasoning_finalized()
                return None
            return self.phase

        if fragment.type == TEXT_DELTA:
            return self.phase

        return None


class TurnAccumulator:
    """Owns the in-progress assistant message for one turn.

    Usage:
        accumulator = TurnAccumulator()
        for event in events:
            if accumulator.apply(event):
                store.append_or_update_assistant_turn(accumulator.snapshot())
            if accumulator.done:
                break
    """

    def __init__(self, on_reasoning_finalized: Callable[[], None] | None = None) -> None:
        self.thinking_buffer = ""
        self.content_buffer = ""
        self.created: datetime | None = None
        self.usage: dict[str, Any] | None = None
        self.done = False
        self._classifier = PhaseClassifier(on_reasoning_finalized)

    @property
    def phase(self) -> Phase:
        return self._classifier.phase

    @property
    def in_thinking_phase(self) -> bool:
        return self._classifier.phase is Phase.REASONING

    def feed(self, fragment: ContentFragment) -> bool:
        """Append one fragment. Returns True if a buffer grew."""
        target = self._classifier.classify(fragment)
        if target is None or not fragment.text:
            return False

        if target is Phase.REASONING:
            self.thinking_buffer += fragment.text
        else:
            self.content_buffer += fragment.text
        return True

    def apply(self, event: Any) -> bool:
        """Fold a parsed stream event into the turn.

        Args:
            event: A parsed stream event

        Returns:
            True if the assistant message should be (re)published
        """
        if self.done:
            return False

        if isinstance(event, StartEvent):
            self.created = event.created
            return True

        if isinstance(event, ContentEvent):
            changed = False
            for fragment in event.content:
                changed = self.feed(fragment) or changed
            return changed

        if isinstance(event, UsageEvent):
            self.usage = dict(event.usage)
            return False

        if isinstance(event, DoneEvent):
            self.done = True
            return True

        return False

    def snapshot(self) -> Message:
        """The assistant message as accumulated so far."""
        return Message(
            role="assistant",
            content=self.content_buffer,
            thinking=self.thinking_buffer,
        )
