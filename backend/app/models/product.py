"""Product ORM — catalog entry with a fixed price.

Invariants:
    - price >= 0
    - Immutable through the API (catalog is loaded out of band)
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Product(Base):
    """Purchasable catalog item."""
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="products_price_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
