"""In-memory sliding window limiter for credential endpoints."""

from __future__ import annotations

import math
import time
from collections import deque
from threading import Lock
from typing import Callable, Deque, Dict


class SlidingWindowRateLimiter:
    """Thread-safe sliding window limiter keyed by login subject."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialise limiter parameters and per-key attempt history."""
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._attempts: Dict[str, Deque[float]] = {}
        self._lock = Lock()

    def _prune(self, key: str, now: float) -> Deque[float]:
        """Drop expired attempts; keys left without history are removed."""
        attempts = self._attempts.get(key)
        if attempts is None:
            return deque()
        while attempts and now - attempts[0] >= self._window:
            attempts.popleft()
        if not attempts:
            del self._attempts[key]
        return attempts

    def allow(self, key: str) -> bool:
        """Record an attempt and return ``True`` while ``key`` is under its limit."""
        now = self._clock()
        with self._lock:
            attempts = self._prune(key, now)
            if len(attempts) >= self._max_requests:
                return False
            attempts.append(now)
            self._attempts[key] = attempts
            return True

    def retry_after(self, key: str) -> int:
        """Whole seconds until ``key`` may try again; ``0`` when it already can."""
        now = self._clock()
        with self._lock:
            attempts = self._prune(key, now)
            if len(attempts) < self._max_requests:
                return 0
            return max(1, math.ceil(attempts[0] + self._window - now))

    def reset(self, key: str) -> None:
        """Forget the attempt history of ``key``, e.g. after a successful login."""
        with self._lock:
            self._attempts.pop(key, None)
