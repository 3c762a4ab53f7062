"""Purchase Schemas — purchase request/response.

Invariants:
    - product_id is a positive integer; buyer identity is NEVER part of the body
      (comes from the bearer-token principal)
"""

from pydantic import BaseModel, Field


class PurchaseRequest(BaseModel):
    product_id: int = Field(ge=1)


class PurchaseResponse(BaseModel):
    """Balance after the debit (JSON number, as clients expect)."""
    balance: float
