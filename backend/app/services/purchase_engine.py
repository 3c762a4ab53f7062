"""Purchase Engine — atomic balance debit + purchase record with compare-and-set.

Invariants:
    - Buyer is the token-resolved principal, never a client-supplied identity
    - Unknown user or product -> InvalidReferenceError, no mutation
    - balance - price < 0 -> InsufficientFundsError, no mutation
    - Debit and purchase insert commit in ONE transaction; any failure rolls back both
    - Debit is conditioned on the balance read in the same attempt
      (UPDATE ... WHERE balance = :read); 0 rows matched -> rollback and retry with fresh data
    - Retries exhausted -> ConcurrencyError (409)

Design Decisions:
    - Compare-and-set over SELECT ... FOR UPDATE: works identically on PostgreSQL and
      SQLite (tests), and never holds a row lock across the sufficiency check
    - populate_existing on reload: a retry must see the committed balance, not the
      identity-map copy from the failed attempt
"""

import logging
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    ConcurrencyError,
    DatabaseError,
    ErrorContext,
    InsufficientFundsError,
    InvalidReferenceError,
)
from app.models.product import Product
from app.models.purchase import Purchase
from app.models.user import User

logger = logging.getLogger(__name__)


class PurchaseEngine:
    """Executes purchases against the credential store."""

    def __init__(self, db: AsyncSession, max_attempts: int = 3):
        self.db = db
        self.max_attempts = max_attempts

    async def purchase(self, username: str, product_id: int) -> Decimal:
        """Debit the principal's balance by the product price. Returns the new balance."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                new_balance = await self._attempt(username, product_id)
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(
                    f"Purchase transaction failed: {e}",
                    extra={"username": username, "product_id": product_id},
                )
                raise DatabaseError("Purchase transaction failed", "commit") from e
            except Exception:
                await self.db.rollback()
                raise
            if new_balance is not None:
                return new_balance
            logger.warning(
                "Balance changed concurrently, retrying purchase",
                extra={
                    "username": username, "product_id": product_id,
                    "attempt": attempt,
                },
            )
        raise ConcurrencyError(
            "Balance changed concurrently, please retry",
            ErrorContext(username=username, product_id=product_id),
        )

    async def _attempt(self, username: str, product_id: int) -> Decimal | None:
        """One read-check-write pass. None means the compare-and-set lost a race."""
        context = ErrorContext(username=username, product_id=product_id)
        user = await self._load_user(username)
        product = await self._load_product(product_id)
        if user is None or product is None:
            raise InvalidReferenceError(context)

        new_balance = user.balance - product.price
        if new_balance < 0:
            raise InsufficientFundsError(context)

        if not await self._debit(user.id, user.balance, new_balance):
            await self.db.rollback()
            return None
        await self._append_purchase(user.id, product.id)
        await self.db.commit()

        logger.info(
            "Purchase completed",
            extra={"username": username, "product_id": product_id},
        )
        return new_balance

    async def _load_user(self, username: str) -> User | None:
        result = await self.db.execute(
            select(User)
            .where(User.username == username)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def _load_product(self, product_id: int) -> Product | None:
        result = await self.db.execute(
            select(Product).where(Product.id == product_id),
        )
        return result.scalar_one_or_none()

    async def _debit(
        self, user_id: int, expected_balance: Decimal, new_balance: Decimal,
    ) -> bool:
        """Compare-and-set: write new_balance only if balance still equals expected_balance."""
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id, User.balance == expected_balance)
            .values(balance=new_balance)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    async def _append_purchase(self, user_id: int, product_id: int) -> None:
        self.db.add(Purchase(user_id=user_id, product_id=product_id))
        await self.db.flush()
