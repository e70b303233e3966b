"""Ledger store queries - read access to accounts, holdings and entries."""

from decimal import Decimal

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.models import Account, Holding, LedgerEntry


async def get_account(
    session: AsyncSession, account_id: str, *, for_update: bool = False
) -> Account | None:
    """Get an account by ID.

    Args:
        session: Database session
        account_id: Account ID
        for_update: Lock the row until the transaction ends

    Returns:
        Account or None if not found
    """
    query = select(Account).where(Account.id == account_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def get_balance(session: AsyncSession, account_id: str) -> Decimal | None:
    """Get the cash balance of an account, or None if not found."""
    result = await session.execute(
        select(Account.cash_balance).where(Account.id == account_id)
    )
    return result.scalar_one_or_none()


async def get_holding(
    session: AsyncSession, account_id: str, symbol: str, *, for_update: bool = False
) -> Holding | None:
    """Get the position of an account in one symbol.

    Args:
        session: Database session
        account_id: Account ID
        symbol: Stock symbol
        for_update: Lock the row until the transaction ends

    Returns:
        Holding or None if the account holds no shares of the symbol
    """
    query = select(Holding).where(
        and_(Holding.account_id == account_id, Holding.symbol == symbol.upper())
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def get_account_holdings(session: AsyncSession, account_id: str) -> list[Holding]:
    """Get all holdings for an account, ordered by symbol."""
    result = await session.execute(
        select(Holding)
        .where(Holding.account_id == account_id)
        .order_by(Holding.symbol)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_ordered_history(session: AsyncSession, account_id: str) -> list[LedgerEntry]:
    """Get every ledger entry of an account in replay order.

    Entries are ordered by timestamp; entries sharing a timestamp keep the
    order in which they were written.
    """
    result = await session.execute(
        select(LedgerEntry)
        .where(LedgerEntry.account_id == account_id)
        .order_by(LedgerEntry.timestamp.asc(), LedgerEntry.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_transactions(
    session: AsyncSession,
    account_id: str,
    symbol: str | None = None,
    limit: int | None = None,
) -> list[LedgerEntry]:
    """Get ledger entries for an account, newest first.

    Args:
        session: Database session
        account_id: Account ID
        symbol: Filter by symbol (optional)
        limit: Maximum number of entries (optional)

    Returns:
        List of ledger entries
    """
    query = select(LedgerEntry).where(LedgerEntry.account_id == account_id)

    if symbol:
        query = query.where(LedgerEntry.symbol == symbol.upper())

    query = query.order_by(LedgerEntry.timestamp.desc(), LedgerEntry.id.desc())
    if limit is not None:
        query = query.limit(limit)

    result = await session.execute(query)
    return list(result.scalars().all())
