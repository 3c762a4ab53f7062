"""Price Catalog — read-through cache over the pricing feed.

Invariants:
    - Cache hit served verbatim, feed not called
    - Miss: both listings fetched, merged, cached with the configured TTL
    - Empty listing or feed failure -> "[]" and nothing cached
    - Cache-store failure propagates as StoreUnavailableError
"""

import json

import pytest

from app.core.errors import PricingFeedError, StoreUnavailableError
from app.services.price_catalog import PriceCatalog

TRADABLE = [
    {"market_hash_name": "AK-47 | Redline", "min_price": 12.5},
    {"market_hash_name": "Glove Case", "min_price": 0},
]
NON_TRADABLE = [{"market_hash_name": "AK-47 | Redline", "min_price": 11.0}]


@pytest.fixture
def catalog(kv_store, fake_feed):
    return PriceCatalog(kv_store, fake_feed, ttl_seconds=3600)


async def test_cache_hit_is_served_verbatim(catalog, kv_store, fake_feed):
    await kv_store.set("prices", '[{"name":"cached"}]', ttl_seconds=3600)
    assert await catalog.get_prices_json() == '[{"name":"cached"}]'
    assert fake_feed.calls == []


async def test_cache_miss_fetches_merges_and_caches(catalog, kv_store, fake_feed):
    fake_feed.listings = {True: TRADABLE, False: NON_TRADABLE}

    document = await catalog.get_prices_json()

    assert fake_feed.calls == [True, False]
    assert json.loads(document) == [
        {"name": "AK-47 | Redline", "tradable_min_price": 12.5, "non_tradable_min_price": 11.0},
        {"name": "Glove Case", "tradable_min_price": None, "non_tradable_min_price": None},
    ]
    assert await kv_store.get("prices") == document


async def test_cached_prices_expire_after_an_hour(catalog, kv_store, fake_feed, clock):
    fake_feed.listings = {True: TRADABLE, False: NON_TRADABLE}
    await catalog.get_prices_json()
    clock.advance(3600)
    assert await kv_store.get("prices") is None


async def test_empty_listing_is_not_cached(catalog, kv_store, fake_feed):
    fake_feed.listings = {True: TRADABLE, False: []}
    assert await catalog.get_prices_json() == "[]"
    assert await kv_store.get("prices") is None


async def test_feed_failure_passes_through_empty(catalog, kv_store, fake_feed):
    fake_feed.error = PricingFeedError("down", "connection_error")
    assert await catalog.get_prices_json() == "[]"
    assert await kv_store.get("prices") is None


async def test_cache_store_failure_propagates(unreachable_store, fake_feed):
    catalog = PriceCatalog(unreachable_store, fake_feed)
    with pytest.raises(StoreUnavailableError):
        await catalog.get_prices_json()
