"""User ORM — credential record and account balance.

Invariants:
    - username unique and immutable after registration
    - password_hash is an opaque bcrypt digest (never plaintext)
    - balance >= 0 (DB CHECK constraint backs the purchase engine's compare-and-set)
    - balance mutated only by the purchase engine

Design Decisions:
    - Numeric(12, 2) over Float: exact money arithmetic end-to-end (Decimal in Python)
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class User(Base):
    """Registered shop user."""
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="users_balance_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"),
        server_default="0",
    )
