"""Credential Store Sessions — async engine, per-request sessions and failure mapping.

Invariants:
    - A session that exits with any exception is rolled back before it is closed
    - Driver/connection failures surface as DatabaseError (503) with the original
      exception chained as __cause__; domain errors (ShopError) pass through untouched
    - IntegrityError is handled by the service that expects it (registration's unique
      index); anything reaching this layer is an unexpected store failure

Design Decisions:
    - Singleton db_manager created in the FastAPI lifespan, closed on shutdown
      (ADR: no global import side effects)
    - expire_on_commit=False: purchase/account services read attributes after commit
    - pool_pre_ping: a recycled PostgreSQL connection must not fail the first purchase
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, InterfaceError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

from app.core.errors import DatabaseError

logger = logging.getLogger(__name__)


def _to_database_error(exc: SQLAlchemyError) -> DatabaseError:
    """Pick the failing operation from the SQLAlchemy exception family."""
    if isinstance(exc, (OperationalError, InterfaceError)):
        return DatabaseError("Credential store unreachable", "connect")
    if isinstance(exc, DBAPIError):
        return DatabaseError("Statement rejected by driver", "query")
    return DatabaseError("Session state error", "session")


class DatabaseSessionManager:
    """Owns the credential-store engine and hands out request-scoped sessions."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.engine = create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            error = _to_database_error(e)
            logger.error(
                f"{error.message}: {e}", extra={"error_code": error.code},
            )
            raise error from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """SELECT 1 through a pooled connection (readiness probe)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except (DatabaseError, OSError) as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Database connection pool disposed")


# Singleton (initialized on startup)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs):
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)


async def close_db() -> None:
    global db_manager
    if db_manager:
        await db_manager.close()
        db_manager = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
