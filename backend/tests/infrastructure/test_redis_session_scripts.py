"""Redis session scripts — bind/unbind Lua executed against fakeredis.

Tests cover:
    - bind replaces the previous token: old token key gone, new one resolves
    - Both session keys carry the same TTL
    - unbind removes both keys and returns the token it dropped
"""

import fakeredis
import pytest

from app.infrastructure.key_value_store import RedisKeyValueStore


@pytest.fixture
async def redis_store():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    store = RedisKeyValueStore()
    store.attach(client)
    yield store, client
    await client.aclose()


async def test_first_bind_has_no_previous_token(redis_store):
    store, _ = redis_store
    assert await store.bind("alice", "t1", 1800) is None
    assert await store.lookup("t1") == "alice"


async def test_rebind_invalidates_previous_token(redis_store):
    store, client = redis_store
    await store.bind("alice", "t1", 1800)

    previous = await store.bind("alice", "t2", 1800)

    assert previous == "t1"
    assert await store.lookup("t1") is None
    assert await store.lookup("t2") == "alice"
    assert await client.get("auth:user:alice") == "t2"


async def test_bind_sets_same_ttl_on_both_keys(redis_store):
    store, client = redis_store
    await store.bind("alice", "t1", 1800)
    assert await client.ttl("auth:token:t1") == 1800
    assert await client.ttl("auth:user:alice") == 1800


async def test_bind_leaves_other_users_alone(redis_store):
    store, _ = redis_store
    await store.bind("alice", "a1", 1800)
    await store.bind("bob", "b1", 1800)
    await store.bind("alice", "a2", 1800)
    assert await store.lookup("b1") == "bob"


async def test_unbind_removes_both_keys(redis_store):
    store, client = redis_store
    await store.bind("alice", "t1", 1800)

    assert await store.unbind("alice") == "t1"

    assert await store.lookup("t1") is None
    assert await client.exists("auth:user:alice") == 0


async def test_unbind_without_session_returns_none(redis_store):
    store, _ = redis_store
    assert await store.unbind("nobody") is None
