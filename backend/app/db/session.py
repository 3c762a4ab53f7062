"""Async Session Factory — provides async DB sessions outside FastAPI request scope.

Invariants:
    - Each factory owns its own engine (caller disposes via factory.kw["bind"])
    - Meant for scripts, migrations, and test fixtures

Design Decisions:
    - Separate from infrastructure/database.py: no DatabaseError mapping here, callers
      (seed scripts, concurrency tests) want raw SQLAlchemy behavior
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker


def create_session_factory(
    database_url: str, **engine_kwargs: Any,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to a fresh engine for the given URL."""
    engine = create_async_engine(database_url, echo=False, **engine_kwargs)
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
