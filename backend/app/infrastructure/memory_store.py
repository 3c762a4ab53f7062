"""In-Process Key-Value Store — TTL dict implementing KeyValueStore and SessionDirectory.

Invariants:
    - Expired entries are invisible to every read (lazy eviction on access)
    - bind/unbind run under one asyncio.Lock: no coroutine observes a half-written pair
    - clock is injectable so tests can advance time past a TTL

Design Decisions:
    - Used for local development (KEY_VALUE_BACKEND=memory) and as the test double for Redis;
      state is per-process, so it is only correct with a single uvicorn worker
"""

import asyncio
import time
from typing import Callable

from app.core.domain_types import token_key, user_key


class InMemoryKeyValueStore:
    """Dict-backed TTL store with the same contract as RedisKeyValueStore."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[str, float | None]] = {}
        self._lock = asyncio.Lock()

    def _read(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def _write(self, key: str, value: str, ttl_seconds: int | None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        self._entries[key] = (value, expires_at)

    def _remove(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._read(key) is not None:
                removed += 1
            self._entries.pop(key, None)
        return removed

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self._read(key)

    async def set(
        self, key: str, value: str, ttl_seconds: int | None = None,
    ) -> None:
        self._write(key, value, ttl_seconds)

    async def delete(self, *keys: str) -> int:
        return self._remove(*keys)

    async def lookup(self, token: str) -> str | None:
        return self._read(token_key(token))

    async def bind(
        self, username: str, token: str, ttl_seconds: int,
    ) -> str | None:
        async with self._lock:
            previous = self._read(user_key(username))
            if previous is not None:
                self._remove(token_key(previous))
            self._write(token_key(token), username, ttl_seconds)
            self._write(user_key(username), token, ttl_seconds)
            return previous

    async def unbind(self, username: str) -> str | None:
        async with self._lock:
            token = self._read(user_key(username))
            if token is not None:
                self._remove(token_key(token))
            self._remove(user_key(username))
            return token
