"""Trader API endpoints - requires authentication."""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.auth import get_current_account
from tradeledger.database import get_session
from tradeledger.errors import LedgerError
from tradeledger.models import Account
from tradeledger.routers.errors import to_http_exception
from tradeledger.schemas.portfolio import (
    AccountInfoResponse,
    HoldingResponse,
    PortfolioResponse,
    TransactionResponse,
    TransactionsResponse,
)
from tradeledger.schemas.trade import (
    HoldingSnapshot,
    TradeCreate,
    TradeRequest,
    TradeResponse,
)
from tradeledger.services import execution, ledger

router = APIRouter()


# ============================================================================
# Account endpoints
# ============================================================================


@router.get(
    "/account",
    response_model=AccountInfoResponse,
    summary="Get my account info",
)
async def get_account(
    account: Account = Depends(get_current_account),
) -> AccountInfoResponse:
    """Get the authenticated trader's account information."""
    return AccountInfoResponse(
        account_id=account.id,
        cash_balance=account.cash_balance,
        created_at=account.created_at,
    )


@router.get(
    "/portfolio",
    response_model=PortfolioResponse,
    summary="Get my holdings at cost",
)
async def get_portfolio(
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
) -> PortfolioResponse:
    """Get all positions with their average cost and total cost basis."""
    holdings = await ledger.get_account_holdings(session, account.id)
    rows = [
        HoldingResponse(
            symbol=h.symbol,
            quantity=h.quantity,
            avg_cost=h.avg_cost,
            cost_basis=execution.quantize_cents(h.cost_basis),
        )
        for h in holdings
    ]
    return PortfolioResponse(
        holdings=rows,
        total_value=sum((r.cost_basis for r in rows), Decimal("0.00")),
    )


@router.get(
    "/transactions",
    response_model=TransactionsResponse,
    summary="Get my ledger entries",
)
async def get_transactions(
    symbol: str | None = Query(default=None, description="Filter by symbol"),
    limit: int | None = Query(default=None, ge=1, le=1000, description="Maximum entries"),
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
) -> TransactionsResponse:
    """Get the authenticated trader's ledger, newest first."""
    entries = await ledger.get_transactions(session, account.id, symbol=symbol, limit=limit)
    return TransactionsResponse(
        transactions=[
            TransactionResponse(
                id=e.id,
                symbol=e.symbol,
                quantity=e.quantity,
                price=e.price,
                side=e.side.value,
                amount=e.amount,
                balance_after=e.balance_after,
                timestamp=e.timestamp,
                description=e.description,
            )
            for e in entries
        ]
    )


# ============================================================================
# Trade endpoints
# ============================================================================


@router.post(
    "/trades",
    response_model=TradeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Execute a trade",
)
async def execute_trade(
    data: TradeCreate,
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
) -> TradeResponse:
    """Buy or sell shares at the given price.

    - **symbol**: Stock symbol to trade
    - **side**: BUY or SELL
    - **quantity**: Number of shares (fractions allowed)
    - **price**: Price per share
    """
    request = TradeRequest(account_id=account.id, **data.model_dump())
    try:
        result = await execution.execute_trade(session, request)
    except LedgerError as e:
        raise to_http_exception(e)

    return TradeResponse(
        entry_id=result.entry_id,
        symbol=result.symbol,
        side=result.side.value,
        quantity=result.quantity,
        price=result.price,
        amount=result.amount,
        new_balance=result.new_balance,
        new_holding=(
            HoldingSnapshot(
                quantity=result.new_holding.quantity,
                avg_cost=result.new_holding.avg_cost,
            )
            if result.new_holding
            else None
        ),
        timestamp=result.timestamp,
        description=result.description,
    )
