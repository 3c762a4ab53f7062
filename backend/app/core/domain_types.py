"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - Money is always Decimal (never float) inside the domain
    - Principal is immutable: resolved once per request by the request gate
    - Key-value keys are built here only (single naming scheme for Redis and memory store)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - Principal as frozen dataclass: explicit value carrier passed into handlers,
      never merged into the parsed request body
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", int)
ProductId = NewType("ProductId", int)
Username = NewType("Username", str)
Token = NewType("Token", str)


# ─── Value Types ─────────────────────────────────────────────────

Money = Decimal

ZERO = Decimal("0")


@dataclass(frozen=True)
class Principal:
    """Identity resolved from a validated bearer token."""
    username: Username


# ─── Key-Value Keys ──────────────────────────────────────────────

TOKEN_KEY_PREFIX = "auth:token:"
USER_KEY_PREFIX = "auth:user:"
PRICES_CACHE_KEY = "prices"


def token_key(token: str) -> str:
    return f"{TOKEN_KEY_PREFIX}{token}"


def user_key(username: str) -> str:
    return f"{USER_KEY_PREFIX}{username}"
