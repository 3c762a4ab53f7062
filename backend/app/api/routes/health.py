"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if the database or key-value store is unreachable

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load balancer
    - Module singletons read at call time (not import time): init happens in lifespan
"""

import logging
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

import app.infrastructure.database as database
import app.infrastructure.key_value_store as key_value_store

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "skin-shop-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check():
    """Readiness probe — database and key-value store connectivity."""
    db_ok = (
        await database.db_manager.health_check()
        if database.db_manager else False
    )
    kv_ok = (
        await key_value_store.kv_store.ping()
        if key_value_store.kv_store else False
    )
    checks = {
        "database": "healthy" if db_ok else "unavailable",
        "key_value_store": "healthy" if kv_ok else "unavailable",
    }
    if not (db_ok and kv_ok):
        logger.warning("Readiness check failed", extra={"status_code": 503})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
