# aidevelo/core/rate_limit.py
"""
Per-client request quotas.

RateLimiter is the injected capability; InMemoryRateLimiter keeps a sliding
window of hit timestamps per key inside this process only. A multi-instance
deployment needs an implementation backed by a shared counter store.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Protocol


class RateLimiter(Protocol):
    def check_and_consume(self, key: str, limit: int, window_seconds: float) -> bool:
        """True and record the hit if under quota, False otherwise."""
        ...


class InMemoryRateLimiter:
    """
    Thread-safe sliding-window limiter.
    Each check expires only its own key's hits; a full sweep that drops
    idle keys runs at most once per sweep_interval seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60.0) -> None:
        self._clock = clock
        self.sweep_interval = sweep_interval
        self._hits: Dict[str, Deque[float]] = {}
        self._windows: Dict[str, float] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    def check_and_consume(self, key: str, limit: int, window_seconds: float) -> bool:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.sweep_interval:
                self._sweep(now)
                self._last_sweep = now
            self._windows[key] = window_seconds
            hits = self._hits.setdefault(key, deque())
            self._expire(hits, now - window_seconds)
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._windows.clear()

    @staticmethod
    def _expire(hits: Deque[float], cutoff: float) -> None:
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        for key in list(self._hits.keys()):
            hits = self._hits[key]
            self._expire(hits, now - self._windows.get(key, 0))
            if not hits:
                del self._hits[key]
                self._windows.pop(key, None)


def rate_limit_key(client_ip: str, operation: str) -> str:
    return f"{client_ip or 'unknown'}:{operation}"
