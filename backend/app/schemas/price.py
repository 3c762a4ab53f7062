"""Price Schemas — merged per-item minimum prices."""

from pydantic import BaseModel


class PriceEntry(BaseModel):
    name: str
    tradable_min_price: float | None = None
    non_tradable_min_price: float | None = None
