"""Fixed-window request counter kept in process memory."""

import threading
import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int


class RateLimiter:
    """
    Allow at most ``max_requests`` per key in each window.

    A key's window starts with its first request and is reset once it has
    elapsed. Keys whose window has expired are swept at most once per window.
    """

    def __init__(
        self,
        window_ms: int,
        max_requests: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock
        self._entries: dict[str, tuple[int, float]] = {}
        self._next_sweep = 0.0
        self._lock = threading.Lock()

    @property
    def retry_after(self) -> int:
        return max(1, -(-self.window_ms // 1000))

    def check(self, key: str) -> RateLimitDecision:
        now = self._clock() * 1000
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)

            count, reset_at = self._entries.get(key, (0, 0.0))
            if count == 0 or now > reset_at:
                self._entries[key] = (1, now + self.window_ms)
                return RateLimitDecision(True, self.max_requests - 1, self.retry_after)

            if count >= self.max_requests:
                return RateLimitDecision(False, 0, self.retry_after)

            count += 1
            self._entries[key] = (count, reset_at)
            return RateLimitDecision(True, self.max_requests - count, self.retry_after)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._entries.items() if now > reset_at]
        for key in expired:
            del self._entries[key]
        self._next_sweep = now + self.window_ms

    @property
    def tracked_keys(self) -> int:
        return len(self._entries)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()
            self._next_sweep = 0.0
