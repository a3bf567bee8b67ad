"""
Key/value store for short-lived auth state (OTPs, login attempt counters).

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions


class KeyValueStore(Protocol):
    """Minimal expiring key/value interface."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    def delete(self, *keys: str) -> None:
        ...

    def incr(self, key: str, ttl_seconds: int) -> int:
        ...


@dataclass
class InMemoryKeyValueStore:
    """Dict-backed store with monotonic-clock expiry for testing/dev."""

    items: dict[str, tuple[str, float]] = field(default_factory=dict)

    def __post_init__(self):
        self._lock = threading.Lock()

    def _live(self, key: str) -> Optional[tuple[str, float]]:
        entry = self.items.get(key)
        if entry is None:
            return None
        if entry[1] <= time.monotonic():
            del self.items[key]
            return None
        return entry

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._live(key)
            return entry[0] if entry else None

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self.items[key] = (value, time.monotonic() + ttl_seconds)

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self.items.pop(key, None)

    def incr(self, key: str, ttl_seconds: int) -> int:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                self.items[key] = ("1", time.monotonic() + ttl_seconds)
                return 1
            count = int(entry[0]) + 1
            self.items[key] = (str(count), entry[1])
            return count

    def reset(self) -> None:
        with self._lock:
            self.items.clear()


@dataclass
class RedisKeyValueStore:
    """Redis-backed store using native key expiry."""

    url: str

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url, decode_responses=True)

    def _call(self, method: str, *args, **kwargs):
        try:
            return getattr(self.client, method)(*args, **kwargs)
        except redis_exceptions.ConnectionError:
            # Managed Redis drops idle connections; reconnect and retry once.
            self.client = redis.Redis.from_url(self.url, decode_responses=True)
            return getattr(self.client, method)(*args, **kwargs)

    def get(self, key: str) -> Optional[str]:
        return self._call("get", key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._call("set", key, value, ex=ttl_seconds)

    def delete(self, *keys: str) -> None:
        if keys:
            self._call("delete", *keys)

    def incr(self, key: str, ttl_seconds: int) -> int:
        count = int(self._call("incr", key))
        if count == 1:
            self._call("expire", key, ttl_seconds)
        return count
