"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - User is the only row with mutable shared state (balance)

Design Decisions:
    - One file per entity for locality (ADR: ExMA max 3-4 files to understand a feature)
    - All models imported here so Base.metadata is complete before create_all/autogenerate
"""

from app.models.user import User  # noqa: F401
from app.models.product import Product  # noqa: F401
from app.models.purchase import Purchase  # noqa: F401
