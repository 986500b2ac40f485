"""Shared TTL cache and marketplace quota state."""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable

from .config import QUOTA_COOLDOWN


class TTLCache:
    """Expiring key/value store bounded to max_size entries.

    Keys are stored under prefix, so several callers can share one cache
    without colliding. Entries are kept in write order; the oldest write is
    evicted first. Not locked: asyncio callers never await between a get and
    the set that follows it.
    """

    def __init__(
        self,
        ttl: float,
        max_size: int = 5000,
        prefix: str = "",
        clock: Callable[[], float] = time.time,
    ):
        self._ttl = ttl
        self._max_size = max_size
        self._prefix = prefix
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def get(self, key: str) -> Any | None:
        """Stored value for key, or None once it is missing or stale."""
        full_key = self._prefix + key
        entry = self._entries.get(full_key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[full_key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        full_key = self._prefix + key
        # Re-inserting moves the key to the newest end
        self._entries.pop(full_key, None)
        self._entries[full_key] = (self._clock(), value)
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


class QuotaState:
    """Quota-exceeded flag for the marketplace search API.

    Set when the API answers with a rate-limit signal and cleared automatically
    once the cooldown has elapsed. Writes are idempotent "exceeded at now"
    operations; the lock keeps the flag and timestamp consistent for readers
    on other threads.
    """

    def __init__(self, name: str, cooldown: float = QUOTA_COOLDOWN):
        self._name = name
        self._cooldown = cooldown
        self._exceeded = False
        self._detected_at = 0.0
        self._lock = threading.Lock()

    def is_exceeded(self, now: float | None = None) -> bool:
        """True while the cooldown that started at the last 429 is still running."""
        now = time.time() if now is None else now
        with self._lock:
            if not self._exceeded:
                return False
            if now - self._detected_at >= self._cooldown:
                self._exceeded = False
                return False
            return True

    def mark_exceeded(self, now: float | None = None) -> None:
        now = time.time() if now is None else now
        with self._lock:
            self._exceeded = True
            self._detected_at = now

    def reset(self) -> None:
        with self._lock:
            self._exceeded = False
            self._detected_at = 0.0

    def retry_after(self, now: float | None = None) -> float:
        """Seconds until the flag clears, 0 when not exceeded."""
        now = time.time() if now is None else now
        if not self.is_exceeded(now):
            return 0.0
        with self._lock:
            return max(0.0, self._cooldown - (now - self._detected_at))

    def __repr__(self) -> str:
        return f"QuotaState({self._name!r}, exceeded={self._exceeded})"
