"""Purchase Concurrency — N simultaneous purchases against one affordable price.

Invariants:
    - Exactly one purchase succeeds, N-1 fail with InsufficientFundsError
    - Final balance = starting balance - one price (no double debit, no overdraft)
    - Exactly one purchase row

Design Decisions:
    - Temp-file SQLite (not :memory:): each engine gets its own connection, so the
      compare-and-set races across real transactions instead of a shared StaticPool connection
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.core.errors import InsufficientFundsError
from app.db.base import Base
from app.db.session import create_session_factory
from app.models import Product, Purchase, User
from app.services.purchase_engine import PurchaseEngine

N_BUYERS = 5


@pytest.fixture
async def file_session_factory(tmp_path):
    factory = create_session_factory(
        f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}",
        connect_args={"timeout": 30},
    )
    engine = factory.kw["bind"]
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield factory
    await engine.dispose()


async def _seed(factory) -> int:
    async with factory() as db:
        db.add(User(username="alice", password_hash="x", balance=Decimal("10.00")))
        product = Product(name="AWP | Asiimov", price=Decimal("7.50"))
        db.add(product)
        await db.commit()
        return product.id


async def _buy(factory, product_id):
    async with factory() as db:
        try:
            return await PurchaseEngine(db, max_attempts=N_BUYERS).purchase(
                "alice", product_id,
            )
        except InsufficientFundsError as e:
            return e


async def test_concurrent_purchases_debit_exactly_once(file_session_factory):
    product_id = await _seed(file_session_factory)

    results = await asyncio.gather(
        *(_buy(file_session_factory, product_id) for _ in range(N_BUYERS)),
    )

    successes = [r for r in results if isinstance(r, Decimal)]
    failures = [r for r in results if isinstance(r, InsufficientFundsError)]
    assert successes == [Decimal("2.50")]
    assert len(failures) == N_BUYERS - 1

    async with file_session_factory() as db:
        balance = (await db.execute(select(User.balance))).scalar_one()
        purchases = (
            await db.execute(select(func.count()).select_from(Purchase))
        ).scalar_one()
    assert balance == Decimal("2.50")
    assert purchases == 1
