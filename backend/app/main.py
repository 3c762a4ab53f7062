"""Skin Shop API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery: ExMA anti-pattern)
    - Global error handlers map ShopError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, key-value store and pricing feed initialized before serving,
      closed on shutdown (lifespan)

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py (ADR: ExMA import fan-out < 10)
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import accounts, health, prices, purchases
from app.config import get_settings
from app.infrastructure.database import close_db, init_db
from app.infrastructure.key_value_store import close_kv_store, init_kv_store
from app.infrastructure.observability import setup_logging
from app.infrastructure.pricing_feed import close_pricing_feed, init_pricing_feed

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    await init_kv_store(
        settings.key_value_backend,
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout_seconds=settings.redis_socket_timeout_seconds,
    )
    init_pricing_feed(
        settings.pricing_feed_url,
        app_id=settings.pricing_feed_app_id,
        currency=settings.pricing_feed_currency,
        timeout_seconds=settings.pricing_feed_timeout_seconds,
        max_retries=settings.pricing_feed_max_retries,
        base_delay_ms=settings.pricing_feed_base_delay_ms,
        max_delay_ms=settings.pricing_feed_max_delay_ms,
    )
    logger.info("Skin Shop API started")
    yield
    logger.info("Skin Shop API shutting down")
    await close_pricing_feed()
    await close_kv_store()
    await close_db()


app = FastAPI(
    title="Skin Shop API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(accounts.router)
app.include_router(prices.router)
app.include_router(purchases.router)

register_error_handlers(app)


def run() -> None:
    """Console entry point: serve with uvicorn on settings.port."""
    uvicorn.run("app.main:app", host="0.0.0.0", port=get_settings().port)


if __name__ == "__main__":
    run()
