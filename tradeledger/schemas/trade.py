"""Pydantic schemas for trade execution."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class TradeSide(str, Enum):
    """Buy or sell."""

    BUY = "BUY"
    SELL = "SELL"


class TradeCreate(BaseModel):
    """Request body for placing a trade."""

    symbol: str = Field(
        ...,
        min_length=1,
        max_length=10,
        pattern=r"^[A-Z0-9.\-]+$",
        description="Stock symbol (will be uppercased)",
    )
    quantity: Decimal = Field(
        ..., gt=0, max_digits=20, decimal_places=8, description="Number of shares"
    )
    price: Decimal = Field(
        ..., gt=0, max_digits=15, decimal_places=4, description="Price per share"
    )
    side: TradeSide = Field(..., description="BUY or SELL")

    @field_validator("symbol", mode="before")
    @classmethod
    def normalize_symbol(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("side", mode="before")
    @classmethod
    def normalize_side(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class TradeRequest(TradeCreate):
    """A validated order for one account, built once at the boundary."""

    account_id: str = Field(..., min_length=1, max_length=255)


class HoldingSnapshot(BaseModel):
    """Position left after a trade."""

    quantity: Decimal
    avg_cost: Decimal


class TradeResponse(BaseModel):
    """Response schema for an executed trade."""

    entry_id: int
    symbol: str
    side: TradeSide
    quantity: Decimal
    price: Decimal
    amount: Decimal = Field(..., description="Executed cash amount (quantity * price)")
    new_balance: Decimal
    new_holding: HoldingSnapshot | None = Field(
        None, description="Remaining position, null when the position was closed"
    )
    timestamp: datetime
    description: str
