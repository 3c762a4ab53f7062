"""Purchase Engine — funds check, atomic debit + record, compare-and-set retry.

Invariants:
    - balance 10.00, price 7.50 -> 2.50 and one purchase row; second purchase fails
    - Unknown user/product -> InvalidReferenceError with no mutation
    - Failure between debit and insert leaves the pre-transaction state
    - A lost compare-and-set is retried with fresh data; exhaustion -> ConcurrencyError
"""

from decimal import Decimal

import pytest

from app.core.errors import (
    ConcurrencyError,
    InsufficientFundsError,
    InvalidReferenceError,
)
from app.services.purchase_engine import PurchaseEngine


async def test_purchase_debits_balance_and_records_purchase(
    test_db, make_user, make_product, read_balance, count_purchases,
):
    await make_user("alice", balance="10.00")
    product = await make_product(price="7.50")

    balance = await PurchaseEngine(test_db).purchase("alice", product.id)

    assert balance == Decimal("2.50")
    assert await read_balance("alice") == Decimal("2.50")
    assert await count_purchases() == 1


async def test_second_purchase_is_insufficient_and_balance_unchanged(
    test_db, make_user, make_product, read_balance, count_purchases,
):
    await make_user("alice", balance="10.00")
    product = await make_product(price="7.50")
    engine = PurchaseEngine(test_db)
    await engine.purchase("alice", product.id)

    with pytest.raises(InsufficientFundsError):
        await engine.purchase("alice", product.id)

    assert await read_balance("alice") == Decimal("2.50")
    assert await count_purchases() == 1


async def test_exact_balance_can_be_spent_to_zero(
    test_db, make_user, make_product, read_balance,
):
    await make_user("alice", balance="7.50")
    product = await make_product(price="7.50")
    assert await PurchaseEngine(test_db).purchase("alice", product.id) == Decimal("0")
    assert await read_balance("alice") == Decimal("0")


async def test_unknown_product_is_invalid_reference(
    test_db, make_user, read_balance, count_purchases,
):
    await make_user("alice", balance="10.00")
    with pytest.raises(InvalidReferenceError):
        await PurchaseEngine(test_db).purchase("alice", 999)
    assert await read_balance("alice") == Decimal("10.00")
    assert await count_purchases() == 0


async def test_unknown_user_is_invalid_reference(test_db, make_product, count_purchases):
    product = await make_product()
    with pytest.raises(InvalidReferenceError):
        await PurchaseEngine(test_db).purchase("ghost", product.id)
    assert await count_purchases() == 0


async def test_failure_after_debit_rolls_back_everything(
    test_db, make_user, make_product, read_balance, count_purchases, monkeypatch,
):
    await make_user("alice", balance="10.00")
    product = await make_product(price="7.50")
    engine = PurchaseEngine(test_db)

    async def crash(user_id, product_id):
        raise RuntimeError("simulated crash before purchase insert")

    monkeypatch.setattr(engine, "_append_purchase", crash)

    with pytest.raises(RuntimeError):
        await engine.purchase("alice", product.id)

    assert await read_balance("alice") == Decimal("10.00")
    assert await count_purchases() == 0


async def test_lost_compare_and_set_is_retried(
    test_db, make_user, make_product, read_balance, count_purchases, monkeypatch,
):
    await make_user("alice", balance="10.00")
    product = await make_product(price="7.50")
    engine = PurchaseEngine(test_db, max_attempts=3)
    real_debit = engine._debit
    calls = []

    async def lose_first_race(user_id, expected, new_balance):
        calls.append(expected)
        if len(calls) == 1:
            return False
        return await real_debit(user_id, expected, new_balance)

    monkeypatch.setattr(engine, "_debit", lose_first_race)

    assert await engine.purchase("alice", product.id) == Decimal("2.50")
    assert len(calls) == 2
    assert await count_purchases() == 1


async def test_retries_exhausted_is_concurrency_error(
    test_db, make_user, make_product, read_balance, count_purchases, monkeypatch,
):
    await make_user("alice", balance="10.00")
    product = await make_product(price="7.50")
    engine = PurchaseEngine(test_db, max_attempts=2)

    async def always_lose(user_id, expected, new_balance):
        return False

    monkeypatch.setattr(engine, "_debit", always_lose)

    with pytest.raises(ConcurrencyError):
        await engine.purchase("alice", product.id)
    assert await read_balance("alice") == Decimal("10.00")
    assert await count_purchases() == 0


async def test_debit_only_applies_when_balance_matches(
    test_db, make_user, read_balance,
):
    user = await make_user("alice", balance="10.00")
    engine = PurchaseEngine(test_db)

    assert await engine._debit(user.id, Decimal("9.00"), Decimal("1.50")) is False
    assert await engine._debit(user.id, Decimal("10.00"), Decimal("2.50")) is True
    await test_db.commit()
    assert await read_balance("alice") == Decimal("2.50")
