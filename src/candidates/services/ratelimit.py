"""Pacing for calls to rate-limited collaborators."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Bound concurrency and keep a minimum gap between consecutive calls.

    Usage::

        limiter = RateLimiter(min_interval=0.5)
        for item in items:
            with limiter:
                process(item)

    The first call never waits; every later call waits until ``min_interval``
    seconds have passed since the previous one finished.
    """

    def __init__(
        self,
        min_interval: float = 0.0,
        *,
        max_concurrency: int = 1,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.min_interval = max(0.0, float(min_interval))
        self.max_concurrency = max_concurrency
        self._slots = threading.BoundedSemaphore(max_concurrency)
        self._lock = threading.Lock()
        self._last_finished: float | None = None
        self._sleep = sleep
        self._clock = clock

    def __enter__(self) -> "RateLimiter":
        self._slots.acquire()
        with self._lock:
            last = self._last_finished
        if last is not None:
            wait = self.min_interval - (self._clock() - last)
            if wait > 0:
                logger.debug("Rate limiter waiting %.2fs", wait)
                self._sleep(wait)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        with self._lock:
            self._last_finished = self._clock()
        self._slots.release()
