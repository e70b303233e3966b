"""Pydantic schemas for account, portfolio and transaction endpoints."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from tradeledger.schemas.trade import TradeSide


class AccountInfoResponse(BaseModel):
    """Response schema for account info (trader view)."""

    account_id: str
    cash_balance: Decimal
    created_at: datetime


class HoldingResponse(BaseModel):
    """A position valued at cost."""

    symbol: str
    quantity: Decimal
    avg_cost: Decimal
    cost_basis: Decimal = Field(..., description="quantity * avg_cost")

    model_config = {"from_attributes": True}


class PortfolioResponse(BaseModel):
    """Holdings at cost with their total."""

    holdings: list[HoldingResponse] = Field(default_factory=list)
    total_value: Decimal = Field(..., description="Sum of cost basis over holdings")


class TransactionResponse(BaseModel):
    """One ledger entry."""

    id: int
    symbol: str
    quantity: Decimal
    price: Decimal
    side: TradeSide
    amount: Decimal
    balance_after: Decimal
    timestamp: datetime
    description: str


class TransactionsResponse(BaseModel):
    """Ledger entries, newest first."""

    transactions: list[TransactionResponse] = Field(default_factory=list)
