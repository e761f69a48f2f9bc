# rideapp/ratelimit.py
import threading
import time
from typing import Callable, Dict, Tuple


class FixedWindowLimiter:
    """
    Very simple in-memory rate limiter.
    Counts requests per client key inside fixed windows of `window` seconds.
    """

    def __init__(self, limit: int, window: int, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: Dict[str, Tuple[float, int]] = {}

    def hit(self, key: str) -> Tuple[bool, int, int]:
        """Record one request; return (allowed, remaining, seconds until reset)."""
        now = self._clock()
        with self._lock:
            start, count = self._hits.get(key, (now, 0))
            if now - start >= self.window:
                start, count = now, 0
            count += 1
            self._hits[key] = (start, count)
            if len(self._hits) > 10_000:
                self._prune(now)
        reset = max(0, int(start + self.window - now))
        return count <= self.limit, max(0, self.limit - count), reset

    def _prune(self, now: float) -> None:
        expired = [k for k, (start, _) in self._hits.items() if now - start >= self.window]
        for k in expired:
            del self._hits[k]
