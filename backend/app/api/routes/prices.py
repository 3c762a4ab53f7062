"""Prices Route — cached minimum prices per item.

Invariants:
    - Requires a bearer token (principal resolved, not otherwise used)
    - Body is the catalog's JSON document, sent without re-serialization

Design Decisions:
    - PriceEntry documents the body shape in OpenAPI only; validating it would re-serialize
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.api.dependencies import get_price_catalog, require_principal
from app.core.domain_types import Principal
from app.schemas.price import PriceEntry
from app.services.price_catalog import PriceCatalog

router = APIRouter(tags=["prices"])


@router.get(
    "/prices",
    response_class=Response,
    responses={200: {"model": list[PriceEntry], "description": "Merged item prices"}},
)
async def get_prices(
    principal: Principal = Depends(require_principal),
    catalog: PriceCatalog = Depends(get_price_catalog),
):
    document = await catalog.get_prices_json()
    return Response(content=document, media_type="application/json")
