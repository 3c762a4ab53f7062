"""Root conftest — environment and shared fixtures for every test package.

Invariants:
    - Env vars set BEFORE app.main is imported (get_settings is lru_cached)
    - Every test gets a fresh in-memory SQLite database
    - Key-value store is the in-process TTL store driven by a FakeClock
    - Pricing feed is a FakeFeed; no test touches the network
    - get_db / get_kv_store / get_pricing_feed overridden on the app for route tests

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (the concurrency test uses a temp-file database instead, see test_purchase_concurrency.py)
    - bcrypt cost 4 in tests: same algorithm, ~100x faster
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("KEY_VALUE_BACKEND", "memory")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_FORMAT", "text")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession, create_async_engine, async_sessionmaker,
)

from app.core.errors import StoreUnavailableError  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.infrastructure.database import get_db  # noqa: E402
from app.infrastructure.key_value_store import get_kv_store  # noqa: E402
from app.infrastructure.memory_store import InMemoryKeyValueStore  # noqa: E402
from app.infrastructure.password_hasher import PasswordHasher  # noqa: E402
from app.infrastructure.pricing_feed import get_pricing_feed  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Product, Purchase, User  # noqa: E402


# -- Fakes ---------------------------------------------------------------------


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFeed:
    """Pricing feed stand-in: canned listings, optional error, call log."""

    def __init__(self):
        self.listings: dict[bool, list[dict]] = {True: [], False: []}
        self.error: Exception | None = None
        self.calls: list[bool] = []

    async def fetch_items(self, tradable: bool = True) -> list[dict]:
        self.calls.append(tradable)
        if self.error:
            raise self.error
        return self.listings[tradable]


class UnreachableStore:
    """Key-value store whose every call fails like a dead Redis."""

    async def _fail(self, operation: str):
        raise StoreUnavailableError("Connection or timeout error", operation)

    async def get(self, key):
        await self._fail("get")

    async def set(self, key, value, ttl_seconds=None):
        await self._fail("set")

    async def delete(self, *keys):
        await self._fail("delete")

    async def lookup(self, token):
        await self._fail("lookup")

    async def bind(self, username, token, ttl_seconds):
        await self._fail("bind")

    async def unbind(self, username):
        await self._fail("unbind")

    async def ping(self):
        return False


# -- Database ------------------------------------------------------------------


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def make_user(test_session_factory, hasher):
    """Insert a user with a real bcrypt hash; returns the persisted row."""

    async def _make(username="alice", password="secret123", balance="0"):
        async with test_session_factory() as db:
            user = User(
                username=username,
                password_hash=hasher.hash_sync(password),
                balance=Decimal(balance),
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
            return user

    return _make


@pytest.fixture
def make_product(test_session_factory):
    async def _make(name="AK-47 | Redline", price="7.50"):
        async with test_session_factory() as db:
            product = Product(name=name, price=Decimal(price))
            db.add(product)
            await db.commit()
            await db.refresh(product)
            return product

    return _make


@pytest.fixture
def read_balance(test_session_factory):
    """Balance as currently committed (fresh session, no identity-map reuse)."""

    async def _read(username: str) -> Decimal:
        async with test_session_factory() as db:
            result = await db.execute(
                select(User.balance).where(User.username == username),
            )
            return result.scalar_one()

    return _read


@pytest.fixture
def count_purchases(test_session_factory):
    async def _count() -> int:
        async with test_session_factory() as db:
            result = await db.execute(select(Purchase))
            return len(result.scalars().all())

    return _count


# -- Key-value store / feed ----------------------------------------------------


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv_store(clock):
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def fake_feed():
    return FakeFeed()


@pytest.fixture
def unreachable_store():
    return UnreachableStore()


# -- HTTP client ---------------------------------------------------------------


@pytest.fixture
async def client(test_session_factory, kv_store, fake_feed):
    """FastAPI test client with DB, key-value store and pricing feed overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_kv_store] = lambda: kv_store
    app.dependency_overrides[get_pricing_feed] = lambda: fake_feed

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth_header():
    def _header(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    return _header
