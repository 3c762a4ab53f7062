"""Price Merge — pure join of tradable and non-tradable feed listings.

Invariants:
    - One output entry per tradable listing, in feed order
    - Missing or zero min_price maps to None (falsy prices are "no offer")
    - Non-tradable price looked up by market_hash_name; absent -> None

Design Decisions:
    - Pure function over dicts: feed payloads stay untyped until merged,
      so no model churn when the feed grows fields
"""

from typing import Any


def merge_item_prices(
    tradable: list[dict[str, Any]], non_tradable: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Join listings by item name into {name, tradable_min_price, non_tradable_min_price}."""
    non_tradable_prices = {
        item.get("market_hash_name"): item.get("min_price")
        for item in non_tradable
    }
    return [
        {
            "name": item.get("market_hash_name"),
            "tradable_min_price": item.get("min_price") or None,
            "non_tradable_min_price": (
                non_tradable_prices.get(item.get("market_hash_name")) or None
            ),
        }
        for item in tradable
    ]
