"""
Spacing between push gateway calls. Same idea as the bucket cooldown: remember when the next
call may start (next_allowed = last start + interval) and wait until then.

One in-flight dispatch at a time per process; concurrent callers queue on the lock.
"""
import threading
import time
from functools import lru_cache
from typing import Callable, TypeVar

from app.config import settings

T = TypeVar("T")


class DispatchThrottle:
    def __init__(
        self,
        min_interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval_seconds = max(0.0, float(min_interval_seconds))
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_allowed: float | None = None

    def run(self, fn: Callable[..., T], *args, **kwargs) -> T:
        """Call fn once the interval since the previous call started has elapsed. Exceptions propagate."""
        with self._lock:
            if self._next_allowed is not None:
                wait = self._next_allowed - self._clock()
                if wait > 0:
                    self._sleep(wait)
            started = self._clock()
            try:
                return fn(*args, **kwargs)
            finally:
                self._next_allowed = started + self.min_interval_seconds


@lru_cache(maxsize=1)
def get_dispatch_throttle() -> DispatchThrottle:
    return DispatchThrottle(settings.push_min_interval_ms / 1000.0)
