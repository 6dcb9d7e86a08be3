from __future__ import annotations

import threading
import time
from typing import Callable, Generic, TypeVar


V = TypeVar("V")


class TTLStore(Generic[V]):
    """In-process key/value map with per-entry expiry.

    Every read and write takes one lock, so callers can use ``update`` for
    read-modify-write sequences that must not interleave. Contents do not
    survive a restart.
    """

    def __init__(self, *, time_provider: Callable[[], float] | None = None) -> None:
        self._time = time_provider or time.monotonic
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, V]] = {}

    def set(self, key: str, value: V, ttl_s: float) -> None:
        with self._lock:
            self._entries[key] = (self._time() + ttl_s, value)

    def get(self, key: str) -> V | None:
        with self._lock:
            return self._get_locked(key)

    def pop(self, key: str) -> V | None:
        with self._lock:
            entry = self._entries.pop(key, None)
        if entry is None or entry[0] <= self._time():
            return None
        return entry[1]

    def update(self, key: str, fn: Callable[[V | None], tuple[V, float]]) -> V:
        # fn sees the live value (or None) and returns the new value plus its ttl.
        with self._lock:
            current = self._get_locked(key)
            value, ttl_s = fn(current)
            self._entries[key] = (self._time() + ttl_s, value)
            return value

    def purge_expired(self) -> int:
        with self._lock:
            now = self._time()
            expired = [key for key, (expires_at, _value) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _get_locked(self, key: str) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._time():
            # Lazy eviction keeps expired tokens from lingering between sweeps.
            del self._entries[key]
            return None
        return value
