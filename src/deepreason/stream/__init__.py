from .events import (
    ContentEvent,
    ContentFragment,
    DoneEvent,
    ErrorEvent,
    StartEvent,
    StreamEvent,
    UsageEvent,
    parse_event_line,
)
from .phase import CLOSE_SENTINEL, OPEN_SENTINEL, Phase, PhaseClassifier, TurnAccumulator
from .reader import CancellationToken, LineBuffer, iter_lines

__all__ = [
    "CLOSE_SENTINEL",
    "CancellationToken",
    "ContentEvent",
    "ContentFragment",
    "DoneEvent",
    "ErrorEvent",
    "LineBuffer",
    "OPEN_SENTINEL",
    "Phase",
    "PhaseClassifier",
    "StartEvent",
    "StreamEvent",
    "TurnAccumulator",
    "UsageEvent",
    "iter_lines",
    "parse_event_line",
]
