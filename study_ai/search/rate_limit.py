from __future__ import annotations
import threading
import time
from typing import Callable


class MinIntervalRateLimiter:
    """Keeps at least `min_interval` seconds between calls by sleeping the caller."""

    def __init__(
        self,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = max(0.0, min_interval)
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        """Block until the next call is allowed; returns the seconds slept."""
        with self._lock:
            waited = 0.0
            now = self._clock()
            if self._last_call is not None:
                remaining = self.min_interval - (now - self._last_call)
                if remaining > 0:
                    self._sleep(remaining)
                    waited = remaining
            self._last_call = self._clock()
            return waited
