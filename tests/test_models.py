"""
Tests for SQLAlchemy models.

Tests constraints, optimistic versioning and cascades.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from tradeledger.errors import AccountNotFoundError
from tradeledger.models import Account, Holding, LedgerEntry, TradeSide
from tradeledger.services import accounts
from tradeledger.services.accounts import generate_api_key, hash_api_key


def _entry(account_id, **overrides):
    values = dict(
        account_id=account_id,
        symbol="AAPL",
        quantity=Decimal("10"),
        price=Decimal("100"),
        side=TradeSide.BUY,
        amount=Decimal("-1000.00"),
        balance_after=Decimal("9000.00"),
        timestamp=datetime(2024, 1, 2, 10, 0, 0),
        description="BUY 10 shares of AAPL at $100",
    )
    values.update(overrides)
    return LedgerEntry(**values)


# ============================================================================
# Account Tests
# ============================================================================


@pytest.mark.asyncio
async def test_create_account(test_session):
    """Test creating an account stores balance and starts at version 1."""
    account = Account(
        id="alice",
        api_key_hash=hash_api_key(generate_api_key()),
        cash_balance=Decimal("2500.00"),
    )
    test_session.add(account)
    await test_session.commit()

    result = await test_session.execute(select(Account).where(Account.id == "alice"))
    saved = result.scalar_one()

    assert saved.cash_balance == Decimal("2500.00")
    assert saved.version == 1
    assert saved.created_at is not None


@pytest.mark.asyncio
async def test_account_version_bumps_on_update(test_session, sample_account):
    """Every committed update increments the version counter."""
    assert sample_account.version == 1

    sample_account.cash_balance = Decimal("9000.00")
    await test_session.commit()

    assert sample_account.version == 2


@pytest.mark.asyncio
async def test_account_negative_cash_rejected(test_session):
    """Test that a negative cash balance violates the check constraint."""
    account = Account(
        id="broke",
        api_key_hash=hash_api_key(generate_api_key()),
        cash_balance=Decimal("-1.00"),
    )
    test_session.add(account)

    with pytest.raises(IntegrityError):
        await test_session.commit()
    await test_session.rollback()


def test_api_key_hash_is_stable():
    """The same key always hashes to the same 64-character digest."""
    key = generate_api_key()

    assert key.startswith("sk_")
    assert hash_api_key(key) == hash_api_key(key)
    assert len(hash_api_key(key)) == 64
    assert hash_api_key(key) != hash_api_key(generate_api_key())


# ============================================================================
# Holding Tests
# ============================================================================


@pytest.mark.asyncio
async def test_holding_cost_basis(test_session, sample_account):
    """Cost basis is quantity times average cost."""
    holding = Holding(
        account_id=sample_account.id,
        symbol="AAPL",
        quantity=Decimal("15"),
        avg_cost=Decimal("106.66666667"),
    )
    test_session.add(holding)
    await test_session.commit()

    assert holding.version == 1
    assert holding.cost_basis == Decimal("1600.00000005")


@pytest.mark.asyncio
async def test_holding_zero_quantity_rejected(test_session, sample_account):
    """A holding row cannot exist with zero shares."""
    test_session.add(
        Holding(
            account_id=sample_account.id,
            symbol="AAPL",
            quantity=Decimal("0"),
            avg_cost=Decimal("100"),
        )
    )

    with pytest.raises(IntegrityError):
        await test_session.commit()
    await test_session.rollback()


@pytest.mark.asyncio
async def test_holding_one_row_per_symbol(test_session, sample_account):
    """Test that (account_id, symbol) is unique."""
    test_session.add(
        Holding(
            account_id=sample_account.id,
            symbol="AAPL",
            quantity=Decimal("1"),
            avg_cost=Decimal("100"),
        )
    )
    await test_session.commit()
    test_session.expunge_all()

    test_session.add(
        Holding(
            account_id=sample_account.id,
            symbol="AAPL",
            quantity=Decimal("2"),
            avg_cost=Decimal("90"),
        )
    )

    with pytest.raises(IntegrityError):
        await test_session.commit()
    await test_session.rollback()


# ============================================================================
# LedgerEntry Tests
# ============================================================================


@pytest.mark.asyncio
async def test_create_ledger_entry(test_session, sample_account):
    """Test that entries get increasing ids and keep their side."""
    first = _entry(sample_account.id)
    second = _entry(
        sample_account.id,
        side=TradeSide.SELL,
        amount=Decimal("500.00"),
        quantity=Decimal("5"),
        balance_after=Decimal("9500.00"),
    )
    test_session.add_all([first, second])
    await test_session.commit()

    assert second.id > first.id
    assert second.side == TradeSide.SELL
    assert first.gross_value == Decimal("1000")


@pytest.mark.asyncio
async def test_ledger_entry_non_positive_price_rejected(test_session, sample_account):
    """Test that a zero price violates the check constraint."""
    test_session.add(_entry(sample_account.id, price=Decimal("0")))

    with pytest.raises(IntegrityError):
        await test_session.commit()
    await test_session.rollback()


# ============================================================================
# Account deletion
# ============================================================================


@pytest.mark.asyncio
async def test_delete_account_cascades(test_session, sample_account):
    """Deleting an account removes its holdings and ledger entries."""
    test_session.add(
        Holding(
            account_id=sample_account.id,
            symbol="AAPL",
            quantity=Decimal("10"),
            avg_cost=Decimal("100"),
        )
    )
    test_session.add(_entry(sample_account.id))
    await test_session.commit()

    await accounts.delete_account(test_session, sample_account.id)

    for model in (Account, Holding, LedgerEntry):
        result = await test_session.execute(select(func.count()).select_from(model))
        assert result.scalar_one() == 0


@pytest.mark.asyncio
async def test_delete_unknown_account(test_session):
    """Deleting a missing account raises AccountNotFoundError."""
    with pytest.raises(AccountNotFoundError):
        await accounts.delete_account(test_session, "ghost")
