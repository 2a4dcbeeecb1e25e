import threading
import time
from typing import Optional


class TokenBucket:
    """Outbound send limiter. One instance per process, shared through app.state.

    Refill is driven by the timestamps passed in, so tests can use a fake clock.
    """

    def __init__(self, capacity: int, refill_per_second: float, now: Optional[float] = None):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if refill_per_second < 0:
            raise ValueError("refill_per_second must not be negative")
        self.capacity = capacity
        self.refill_per_second = refill_per_second
        self.tokens = float(capacity)
        self.last_refill = time.monotonic() if now is None else now
        self._lock = threading.Lock()

    def _refill_locked(self, now: float) -> None:
        elapsed = now - self.last_refill
        if elapsed <= 0:
            return
        self.tokens = min(float(self.capacity), self.tokens + elapsed * self.refill_per_second)
        self.last_refill = now

    def refill(self, now: Optional[float] = None) -> float:
        now = time.monotonic() if now is None else now
        with self._lock:
            self._refill_locked(now)
            return self.tokens

    def consume(self, now: Optional[float] = None, tokens: int = 1) -> bool:
        now = time.monotonic() if now is None else now
        with self._lock:
            self._refill_locked(now)
            if self.tokens < tokens:
                return False
            self.tokens -= tokens
            return True
