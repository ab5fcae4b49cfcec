"""
Fixed-window request throttles.

A window opens on the first call for a key and lasts ``window_seconds``.
Calls inside the window are counted; once the count exceeds ``limit`` the
key is rejected until the window ages out. Rejected calls never extend the
window. Like any fixed-window counter this admits up to twice the nominal
rate across a window boundary.
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Tuple

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class ThrottleState:
    window_started_at: float
    last_call_at: float
    count_in_window: int


class FixedWindowThrottle:
    """Counts calls per key in fixed windows. Thread safe."""

    def __init__(
        self,
        window_seconds: float,
        limit: int,
        stale_after_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            window_seconds: Length of a counting window
            limit: Calls permitted per window
            stale_after_seconds: Idle time after which a key is purged by sweep()
            clock: Monotonic time source
        """
        self.window_seconds = window_seconds
        self.limit = limit
        self.stale_after_seconds = stale_after_seconds
        self._clock = clock
        self._states: Dict[Hashable, ThrottleState] = {}
        self._lock = threading.Lock()

    def hit(self, key: Hashable) -> bool:
        """Record a call for ``key``. Returns False if it exceeds the limit."""
        with self._lock:
            now = self._clock()
            state = self._states.get(key)
            if state is None or now - state.window_started_at >= self.window_seconds:
                self._states[key] = ThrottleState(
                    window_started_at=now, last_call_at=now, count_in_window=1
                )
                return True

            state.last_call_at = now
            state.count_in_window += 1
            return state.count_in_window <= self.limit

    def retry_after(self, key: Hashable) -> float:
        """Seconds until the current window for ``key`` closes (0 if none)."""
        with self._lock:
            state = self._states.get(key)
            if state is None:
                return 0.0
            remaining = state.window_started_at + self.window_seconds - self._clock()
            return max(0.0, remaining)

    def sweep(self) -> int:
        """Purge keys idle for longer than ``stale_after_seconds``."""
        removed = 0
        with self._lock:
            keys = list(self._states)

        for key in keys:
            with self._lock:
                state = self._states.get(key)
                if state is not None and self._clock() - state.last_call_at > self.stale_after_seconds:
                    del self._states[key]
                    removed += 1

        if removed:
            logger.info("throttle_state_swept", keys_removed=removed)
        return removed

    def reset(self) -> int:
        """Forget all state. Returns the number of keys removed."""
        with self._lock:
            count = len(self._states)
            self._states.clear()
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)


class RequestThrottle(FixedWindowThrottle):
    """
    Burst limit on verification calls per (caller, order) pair.

    Defaults: at most 5 calls per 2 second window.
    """

    def __init__(
        self,
        window_seconds: float = 2.0,
        burst: int = 5,
        stale_after_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(
            window_seconds=window_seconds,
            limit=burst,
            stale_after_seconds=stale_after_seconds,
            clock=clock,
        )

    @staticmethod
    def make_key(caller_key: str, order_id: str) -> Tuple[str, str]:
        return (caller_key, order_id)

    def allow(self, caller_key: str, order_id: str) -> bool:
        allowed = self.hit(self.make_key(caller_key, order_id))
        if not allowed:
            logger.warning("verification_throttled", caller=caller_key, order_id=order_id)
        return allowed

    def retry_after_for(self, caller_key: str, order_id: str) -> float:
        return self.retry_after(self.make_key(caller_key, order_id))
