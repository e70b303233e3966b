"""
Database configuration for the trade ledger.

Uses async SQLAlchemy with SQLite (local) or PostgreSQL (production).
The URL comes from settings (DATABASE_URL).
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from tradeledger.config import get_settings

_settings = get_settings()

# echo=False by default, set SQLALCHEMY_ECHO=1 to enable SQL logging
engine = create_async_engine(_settings.database_url, echo=_settings.sqlalchemy_echo)

# Session factory - creates new database sessions
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def init_db() -> None:
    """Create the accounts, holdings and ledger_entries tables.

    Called on application startup and by `manage.py` before each command.
    Existing tables are left untouched.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncSession:
    """Dependency that provides one unit-of-work session per request.

    Trade execution commits or rolls back this session itself; read-only
    routes simply let it close.

    Usage in FastAPI:
        @router.get("/portfolio")
        async def get_portfolio(session: AsyncSession = Depends(get_session)):
            ...
    """
    async with AsyncSessionLocal() as session:
        yield session
