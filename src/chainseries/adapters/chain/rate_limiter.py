import threading
import time
from typing import Callable

from chainseries.core.errors import RateLimitExhausted


class TokenBucket:
    """
    Fixed-window token bucket.

    `capacity` tokens become available every `refill_interval` seconds; a
    caller that finds the bucket empty sleeps in short steps until the next
    refill or until `max_wait` is used up.
    """

    def __init__(
        self,
        capacity: int,
        refill_interval: float,
        max_wait: float = 30.0,
        poll_interval: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        if refill_interval <= 0:
            raise ValueError("refill_interval must be > 0")
        self._capacity = capacity
        self._interval = refill_interval
        self._max_wait = max_wait
        self._poll = poll_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._tokens = capacity
        self._window_start = clock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def _refill(self, now: float) -> None:
        if now - self._window_start >= self._interval:
            windows = int((now - self._window_start) // self._interval)
            self._window_start += windows * self._interval
            self._tokens = self._capacity

    def try_acquire(self) -> bool:
        with self._lock:
            self._refill(self._clock())
            if self._tokens > 0:
                self._tokens -= 1
                return True
            return False

    def acquire(self) -> None:
        started = self._clock()
        while not self.try_acquire():
            now = self._clock()
            waited = now - started
            if waited >= self._max_wait:
                raise RateLimitExhausted(
                    f"no request token within {self._max_wait:.1f}s"
                )
            with self._lock:
                until_refill = self._window_start + self._interval - now
            step = min(self._poll, max(until_refill, 0.0), self._max_wait - waited)
            self._sleep(step if step > 0 else self._poll)


def backoff_delay(attempt: int, base: float = 0.5, cap: float = 8.0) -> float:
    return min(cap, base * (2 ** attempt))
