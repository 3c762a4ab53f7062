"""Price Catalog — cached merged price list from the pricing feed.

Invariants:
    - Cache hit: the cached JSON document is served verbatim (no re-merge)
    - Cache miss: tradable + non-tradable listings fetched, merged, cached for ttl_seconds
    - Either listing empty -> empty result, NOT cached (next request retries the feed)
    - Feed failure -> empty result (passthrough); cache-store failure -> StoreUnavailableError

Design Decisions:
    - Returns the JSON text, not parsed objects: route streams it as-is
    - Sequential fetches: the feed is rate limited per client
"""

import json
import logging
from typing import Any, Protocol

from app.core.domain_types import PRICES_CACHE_KEY
from app.core.errors import PricingFeedError
from app.core.price_merge import merge_item_prices
from app.core.repository_protocols import KeyValueStore

logger = logging.getLogger(__name__)

EMPTY_PRICES = "[]"


class ItemFeed(Protocol):
    async def fetch_items(self, tradable: bool = True) -> list[dict[str, Any]]: ...


class PriceCatalog:
    """Read-through cache over the pricing feed."""

    def __init__(
        self, cache: KeyValueStore, feed: ItemFeed, ttl_seconds: int = 60 * 60,
    ):
        self.cache = cache
        self.feed = feed
        self.ttl_seconds = ttl_seconds

    async def get_prices_json(self) -> str:
        cached = await self.cache.get(PRICES_CACHE_KEY)
        if cached:
            logger.debug("Prices served from cache", extra={"cache_hit": True})
            return cached

        try:
            tradable = await self.feed.fetch_items(tradable=True)
            non_tradable = await self.feed.fetch_items(tradable=False)
        except PricingFeedError as e:
            logger.warning(
                f"Pricing feed unavailable, serving empty prices: {e.message}",
                extra={"error_code": e.code},
            )
            return EMPTY_PRICES

        if not tradable or not non_tradable:
            logger.warning("Pricing feed returned an empty listing, not caching")
            return EMPTY_PRICES

        document = json.dumps(merge_item_prices(tradable, non_tradable))
        await self.cache.set(PRICES_CACHE_KEY, document, self.ttl_seconds)
        logger.info("Prices refreshed from feed", extra={"cache_hit": False})
        return document
