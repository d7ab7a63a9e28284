"""
Per-session request throttle.

A simple gate, not a token bucket: a session gets at most one accepted
request per cooldown window, and rejected requests are dropped rather than
queued. While a request accepted through hold() is still running, the
session stays closed even if the cooldown has elapsed, so one session's
queries never interleave.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Hashable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

DEFAULT_SESSION = "default"


@dataclass
class ThrottleState:
    """Gate state for one session."""

    cooldown_ms: int
    last_request_at: float | None = None
    in_flight: bool = False

    def ready(self, now: float) -> bool:
        if self.in_flight:
            return False
        if self.last_request_at is None:
            return True
        return (now - self.last_request_at) * 1000 >= self.cooldown_ms


class RequestThrottle:
    """
    Session-keyed cooldown gate.

    Args:
        cooldown_ms: Minimum time between accepted requests from one session
        clock: Monotonic clock in seconds (injectable for tests)
    """

    def __init__(self, cooldown_ms: int = 3000, clock: Callable[[], float] = time.monotonic):
        if cooldown_ms < 0:
            raise ValueError(f"cooldown_ms must be non-negative, got {cooldown_ms}")
        self._cooldown_ms = cooldown_ms
        self._clock = clock
        self._sessions: dict[Hashable, ThrottleState] = {}
        self._lock = threading.Lock()

    @property
    def cooldown_ms(self) -> int:
        return self._cooldown_ms

    def state(self, session_id: Hashable = DEFAULT_SESSION) -> ThrottleState | None:
        return self._sessions.get(session_id)

    def try_acquire(self, session_id: Hashable = DEFAULT_SESSION) -> bool:
        """
        Accept or reject a request from ``session_id``.

        Returns:
            True (and records the time) if the session is outside its
            cooldown window and has nothing in flight; False otherwise
        """
        return self._acquire(session_id, mark_in_flight=False)

    def _acquire(self, session_id: Hashable, mark_in_flight: bool) -> bool:
        with self._lock:
            state = self._sessions.get(session_id)
            if state is None:
                state = self._sessions[session_id] = ThrottleState(self._cooldown_ms)
            now = self._clock()
            if not state.ready(now):
                return False
            state.last_request_at = now
            state.in_flight = mark_in_flight
            return True

    def release(self, session_id: Hashable = DEFAULT_SESSION) -> None:
        """Mark the session's in-flight request as finished."""
        with self._lock:
            state = self._sessions.get(session_id)
            if state is not None:
                state.in_flight = False

    @contextmanager
    def hold(self, session_id: Hashable = DEFAULT_SESSION) -> Iterator[bool]:
        """
        Acquire for the duration of a block.

        Yields whether the request was accepted. An accepted session stays
        in flight (and rejects everything) until the block exits.

        Example:
            with throttle.hold(user_id) as accepted:
                if not accepted:
                    return "Please wait"
                return await orchestrator.process_query(query, history)
        """
        accepted = self._acquire(session_id, mark_in_flight=True)
        try:
            yield accepted
        finally:
            if accepted:
                self.release(session_id)

    def reset(self, session_id: Hashable = DEFAULT_SESSION) -> None:
        """Forget a session entirely."""
        with self._lock:
            self._sessions.pop(session_id, None)
