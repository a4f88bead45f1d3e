"""Explicit session-wide state shared by the controller and the views.

Holds what would otherwise be free-floating mutable flags: whether a turn
is loading, how long the current turn has been reasoning, and the last
failure. Views observe it; only the controller mutates it.
"""

import time
from collections.abc import Callable
from typing import Any

from .render.scheduler import RenderScheduler
from .sessions.manager import SessionManager

ContextListener = Callable[["ChatContext"], None]


class ChatContext:
    """State object passed explicitly to everything that needs session state.

    Args:
        sessions: The session manager (and through it the conversation store)
        scheduler: Render scheduler driven by store mutations
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        sessions: SessionManager,
        scheduler: RenderScheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.sessions = sessions
        self.scheduler = scheduler or RenderScheduler()
        self.loading = False
        self.last_error: str | None = None
        self.usage: dict[str, Any] | None = None
        self._clock = clock
        self._thinking_started_at: float | None = None
        self._thinking_finished_at: float | None = None
        self._turn_ended_at: float | None = None
        self._listeners: list[ContextListener] = []
        self._unsubscribe_store = self.store.subscribe(self._on_store_change)

    @property
    def store(self):
        return self.sessions.store

    def subscribe(self, listener: ContextListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def close(self) -> None:
        """Detach from the store."""
        self._unsubscribe_store()
        self.scheduler.cancel_pending()

    # Turn lifecycle

    def begin_turn(self) -> None:
        self.loading = True
        self.last_error = None
        self.usage = None
        self._thinking_started_at = self._clock()
        self._thinking_finished_at = None
        self._turn_ended_at = None
        self._notify()

    def finish_thinking(self) -> None:
        """Freeze the reasoning timer (the reasoning trace is final)."""
        if self._thinking_started_at is not None and self._thinking_finished_at is None:
            self._thinking_finished_at = self._clock()
            self._notify()

    def end_turn(self, error: str | None = None) -> None:
        self.loading = False
        self._turn_ended_at = self._clock()
        if error is not None:
            self.last_error = error
        self._notify()

    @property
    def thinking_complete(self) -> bool:
        return self._thinking_finished_at is not None

    @property
    def thinking_elapsed(self) -> int:
        """Whole seconds spent reasoning in the current (or last) turn."""
        if self._thinking_started_at is None:
            return 0
        end = self._thinking_finished_at
        if end is None:
            end = self._turn_ended_at
        if end is None:
            end = self._clock()
        return int(end - self._thinking_started_at)

    def _on_store_change(self, messages: list) -> None:
        self.scheduler.notify_mutation(len(messages))

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
