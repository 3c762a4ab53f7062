"""Purchase Route — debit the authenticated user's balance for one product.

Invariants:
    - Buyer is the bearer-token principal; the body carries only product_id
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_purchase_engine, require_principal
from app.core.domain_types import Principal
from app.schemas.purchase import PurchaseRequest, PurchaseResponse
from app.services.purchase_engine import PurchaseEngine

router = APIRouter(tags=["purchases"])


@router.post("/purchase", response_model=PurchaseResponse)
async def purchase(
    body: PurchaseRequest,
    principal: Principal = Depends(require_principal),
    engine: PurchaseEngine = Depends(get_purchase_engine),
):
    balance = await engine.purchase(principal.username, body.product_id)
    return PurchaseResponse(balance=float(balance))
