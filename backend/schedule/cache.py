"""
Short-lived read cache for student-facing schedule reads.

Intent:
    Students reload their schedule often; the task and event lists of a course
    change rarely. Caching those two reads for a short TTL bounds the cost of
    repeated requests. Staff views never go through this cache.

Behavior:
    - Entries expire ``ttl_seconds`` after they were stored.
    - A TTL of 0 disables caching (every lookup misses, nothing is stored).
    - Thread-safe; values are returned as stored (callers must not mutate).
"""
from __future__ import annotations

from threading import Lock
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class ReadCache:
    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] | None = None) -> None:
        self._ttl = float(ttl_seconds)
        self._clock = clock or time.monotonic
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: Hashable) -> Optional[Any]:
        if self._ttl <= 0:
            return None
        now = self._clock()
        with self._lock:
            self._prune(now)
            entry = self._entries.get(key)
        return entry[1] if entry else None

    def put(self, key: Hashable, value: Any) -> None:
        if self._ttl <= 0:
            return
        now = self._clock()
        with self._lock:
            self._entries[key] = (now, value)
            self._prune(now)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _prune(self, now: float) -> None:
        expired = [key for key, (stored_at, _) in self._entries.items() if now - stored_at >= self._ttl]
        for key in expired:
            self._entries.pop(key, None)
