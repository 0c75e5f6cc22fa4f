import threading
import time
from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")


class Throttle:
    """Token bucket with a single token, refilled once per interval.

    Callers block until the token is available, so operations start at most
    once per interval no matter how many threads share the throttle.
    """

    def __init__(
        self,
        interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._interval = interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_token_at: float | None = None

    def run_throttled(self, operation: Callable[[], T]) -> T:
        """Wait for the token, then run the operation and return its result."""
        with self._lock:
            now = self._clock()
            if self._next_token_at is not None and now < self._next_token_at:
                self._sleep(self._next_token_at - now)
                now = self._next_token_at
            self._next_token_at = now + self._interval
        return operation()
