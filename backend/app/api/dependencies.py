"""Request Gate & Service Wiring — FastAPI dependencies that build services per request.

Invariants:
    - require_principal guards every route except register, login and health
    - Missing Authorization header -> UnauthenticatedError("missing token")
    - Malformed header or unknown/expired token -> UnauthenticatedError("invalid token")
    - Store failure while resolving propagates as StoreUnavailableError (503), never authenticates
    - The resolved Principal is returned as a value; request bodies are never mutated
    - Read-only: resolving does not extend the token TTL

Design Decisions:
    - Dependency injection over middleware: protected routes declare the principal they need,
      tests override get_kv_store / get_db / get_pricing_feed without monkeypatching globals
"""

from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.domain_types import Principal, Username
from app.core.errors import UnauthenticatedError
from app.core.repository_protocols import KeyValueStore
from app.infrastructure.database import get_db
from app.infrastructure.key_value_store import get_kv_store
from app.infrastructure.password_hasher import PasswordHasher
from app.infrastructure.pricing_feed import PricingFeedClient, get_pricing_feed
from app.services.accounts import AccountService
from app.services.price_catalog import PriceCatalog
from app.services.purchase_engine import PurchaseEngine
from app.services.session_manager import SessionManager

BEARER_SCHEME = "bearer"


def get_session_manager(
    store=Depends(get_kv_store),
) -> SessionManager:
    return SessionManager(store, ttl_seconds=get_settings().session_ttl_seconds)


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=get_settings().bcrypt_rounds)


def parse_bearer_token(authorization: str) -> str | None:
    """Extract the token from 'Bearer <token>'; None when malformed."""
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME:
        return None
    return parts[1]


async def require_principal(
    authorization: str | None = Header(default=None),
    sessions: SessionManager = Depends(get_session_manager),
) -> Principal:
    """Resolve the bearer token to the authenticated principal."""
    if not authorization:
        raise UnauthenticatedError("missing token")
    token = parse_bearer_token(authorization)
    username = await sessions.resolve(token) if token else None
    if username is None:
        raise UnauthenticatedError("invalid token")
    return Principal(username=Username(username))


def get_account_service(
    db: AsyncSession = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> AccountService:
    return AccountService(db, sessions, hasher)


def get_purchase_engine(
    db: AsyncSession = Depends(get_db),
) -> PurchaseEngine:
    return PurchaseEngine(db, max_attempts=get_settings().purchase_max_attempts)


def get_price_catalog(
    store: KeyValueStore = Depends(get_kv_store),
    feed: PricingFeedClient = Depends(get_pricing_feed),
) -> PriceCatalog:
    return PriceCatalog(
        store, feed, ttl_seconds=get_settings().prices_cache_ttl_seconds,
    )
