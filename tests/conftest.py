"""
Shared pytest fixtures for testing the trade ledger.

Uses an in-memory SQLite database for fast, isolated tests.
"""

import os

# Keep the test run offline and self-contained
os.environ.setdefault("OTLP_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("VALUATION_PROVIDER", "static")

from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tradeledger.database import Base, get_session
from tradeledger.main import app
from tradeledger.models import Account
from tradeledger.services.accounts import hash_api_key
from tradeledger.services.valuation import StaticPriceSource, get_price_source


# Use in-memory SQLite for tests (fast, isolated)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_API_KEY = "sk_test_trader1"


@pytest.fixture(scope="session")
def anyio_backend():
    """Use asyncio backend for pytest-asyncio."""
    return "asyncio"


@pytest_asyncio.fixture
async def test_engine():
    """Create a test database engine.

    Creates tables at the start, drops them at the end.
    Each test gets a fresh database.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine):
    """Provide a database session for a test.

    Rolls back the session after each test for isolation.
    """
    async_session = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    """Engine on a SQLite file, so separate sessions get separate connections."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def price_source():
    """Static quotes used by the API client."""
    return StaticPriceSource({"AAPL": "120", "MSFT": "300"})


@pytest_asyncio.fixture
async def test_client(test_engine, price_source):
    """Provide a FastAPI test client with test database.

    Overrides the get_session dependency to use our test database and the
    price source dependency to use static quotes.
    """
    async_session = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_session():
        async with async_session() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_price_source] = lambda: price_source

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# --- Helper fixtures for creating test data ---

@pytest_asyncio.fixture
async def sample_account(test_session):
    """Create a sample account with $10,000 for testing."""
    account = Account(
        id="trader1",
        api_key_hash=hash_api_key(TEST_API_KEY),
        cash_balance=Decimal("10000.00"),
    )
    test_session.add(account)
    await test_session.commit()
    await test_session.refresh(account)
    return account


@pytest.fixture
def auth_headers(sample_account):
    """Headers authenticating as the sample account."""
    return {"X-API-Key": TEST_API_KEY}
