"""Fixed-window rate limiting per client address."""

import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class RateLimitEntry:
    """Requests counted in the current window for one client."""

    window_start: float
    count: int


class RateLimiter:
    """Allow at most ``limit`` requests per ``window_seconds`` for each key."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._entries: dict[str, RateLimitEntry] = {}

    def hit(self, key: str) -> bool:
        """Count a request for ``key``; return False once the window is exhausted."""
        now = self.clock()
        entry = self._entries.get(key)
        if entry is None or now - entry.window_start >= self.window_seconds:
            self._prune(now)
            entry = RateLimitEntry(window_start=now, count=0)
            self._entries[key] = entry

        if entry.count >= self.limit:
            return False
        entry.count += 1
        return True

    def retry_after(self, key: str) -> int:
        """Seconds until ``key``'s window resets."""
        entry = self._entries.get(key)
        if entry is None:
            return 0
        remaining = self.window_seconds - (self.clock() - entry.window_start)
        return max(0, int(remaining + 0.999))

    def _prune(self, now: float) -> None:
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.window_start >= self.window_seconds
        ]
        for key in expired:
            del self._entries[key]
