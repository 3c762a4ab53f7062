"""Redis Key-Value Store — TTL cache and session directory over redis.asyncio.

Invariants:
    - Every Redis failure (connection, timeout, protocol) mapped to StoreUnavailableError -> 503
    - bind/unbind touch both session keys in ONE server-side Lua script (atomic, no interleaving)
    - A failed read never returns None (None means "absent", not "unknown")

Design Decisions:
    - Lua over WATCH/MULTI: single round trip, no client-side retry loop
    - decode_responses=True: every value stored here is text (usernames, tokens, JSON)
    - Singleton kv_store initialized on startup, like db_manager (ADR: no global import side effects)
"""

import logging
from contextlib import contextmanager
from typing import Iterator

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.domain_types import TOKEN_KEY_PREFIX, token_key, user_key
from app.core.errors import StoreUnavailableError
from app.infrastructure.memory_store import InMemoryKeyValueStore

logger = logging.getLogger(__name__)

# KEYS[1] = user key, KEYS[2] = new token key
# ARGV[1] = token, ARGV[2] = username, ARGV[3] = ttl seconds, ARGV[4] = token key prefix
_BIND_SESSION_LUA = """
local previous = redis.call('GET', KEYS[1])
if previous then
    redis.call('DEL', ARGV[4] .. previous)
end
redis.call('SET', KEYS[2], ARGV[2], 'EX', ARGV[3])
redis.call('SET', KEYS[1], ARGV[1], 'EX', ARGV[3])
return previous
"""

# KEYS[1] = user key, ARGV[1] = token key prefix
_UNBIND_SESSION_LUA = """
local token = redis.call('GET', KEYS[1])
if token then
    redis.call('DEL', ARGV[1] .. token)
end
redis.call('DEL', KEYS[1])
return token
"""


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Map redis-py failures to StoreUnavailableError (fail closed)."""
    try:
        yield
    except RedisError as e:
        logger.error(f"Redis {operation} failed: {e}")
        raise StoreUnavailableError(
            "Connection or timeout error", operation,
        ) from e


class RedisKeyValueStore:
    """Async Redis store implementing KeyValueStore and SessionDirectory."""

    def __init__(
        self,
        redis_url: str = "redis://127.0.0.1:6379/0",
        *,
        max_connections: int = 50,
        socket_timeout_seconds: float = 2.0,
    ) -> None:
        self._url = redis_url
        self._max_connections = max_connections
        self._socket_timeout = socket_timeout_seconds
        self._redis: aioredis.Redis | None = None
        self._bind_script = None
        self._unbind_script = None

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        """Establish the connection pool and verify connectivity."""
        if self._redis is not None:
            return
        self.attach(aioredis.from_url(
            self._url,
            decode_responses=True,
            max_connections=self._max_connections,
            socket_timeout=self._socket_timeout,
            socket_connect_timeout=self._socket_timeout,
        ))
        with _store_errors("connect"):
            await self._redis.ping()
        logger.info("Redis connected: %s", self._url.split("@")[-1])

    def attach(self, client: aioredis.Redis) -> None:
        """Use an existing client (must decode responses) and register the session scripts on it."""
        self._redis = client
        self._bind_script = client.register_script(_BIND_SESSION_LUA)
        self._unbind_script = client.register_script(_UNBIND_SESSION_LUA)

    async def close(self) -> None:
        """Close the connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Redis connection closed")

    @property
    def redis(self) -> aioredis.Redis:
        if self._redis is None:
            raise RuntimeError(
                "RedisKeyValueStore not connected. Call connect() first.",
            )
        return self._redis

    async def ping(self) -> bool:
        """Connectivity check for readiness probes."""
        try:
            with _store_errors("ping"):
                return bool(await self.redis.ping())
        except StoreUnavailableError:
            return False

    # -- generic TTL key/value -------------------------------------------------

    async def get(self, key: str) -> str | None:
        with _store_errors("get"):
            return await self.redis.get(key)

    async def set(
        self, key: str, value: str, ttl_seconds: int | None = None,
    ) -> None:
        with _store_errors("set"):
            await self.redis.set(key, value, ex=ttl_seconds)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with _store_errors("delete"):
            return await self.redis.delete(*keys)

    # -- session directory -----------------------------------------------------

    async def lookup(self, token: str) -> str | None:
        with _store_errors("lookup"):
            return await self.redis.get(token_key(token))

    async def bind(
        self, username: str, token: str, ttl_seconds: int,
    ) -> str | None:
        with _store_errors("bind"):
            return await self._bind_script(
                keys=[user_key(username), token_key(token)],
                args=[token, username, ttl_seconds, TOKEN_KEY_PREFIX],
            )

    async def unbind(self, username: str) -> str | None:
        with _store_errors("unbind"):
            return await self._unbind_script(
                keys=[user_key(username)], args=[TOKEN_KEY_PREFIX],
            )


# Singleton (initialized on startup)
kv_store: RedisKeyValueStore | InMemoryKeyValueStore | None = None


async def init_kv_store(backend: str, redis_url: str, **kwargs) -> None:
    """Create and connect the process-wide key-value store."""
    global kv_store
    if backend == "memory":
        logger.warning("Using in-process key-value store (single worker only)")
        kv_store = InMemoryKeyValueStore()
        return
    store = RedisKeyValueStore(redis_url, **kwargs)
    await store.connect()
    kv_store = store


async def close_kv_store() -> None:
    global kv_store
    if isinstance(kv_store, RedisKeyValueStore):
        await kv_store.close()
    kv_store = None


def get_kv_store() -> RedisKeyValueStore | InMemoryKeyValueStore:
    """FastAPI dependency for the key-value store."""
    if kv_store is None:
        raise RuntimeError("Key-value store not initialized")
    return kv_store
