"""Pydantic schemas for the account analysis report."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class HoldingPerformanceResponse(BaseModel):
    """A live holding marked to the current price."""

    symbol: str
    quantity: Decimal
    avg_cost: Decimal
    current_price: Decimal
    current_value: Decimal
    unrealized_gain_loss: Decimal
    degraded: bool = Field(
        False, description="True when current_price fell back to avg_cost"
    )
    degraded_reason: str | None = None


class ActivitySummaryResponse(BaseModel):
    """Counts of trades by side."""

    total_trades: int
    buys: int
    sells: int
    most_traded_symbol: str | None = None


class RealizedGainResponse(BaseModel):
    """Gain or loss locked in by one sell."""

    symbol: str
    quantity_sold: Decimal
    avg_cost_at_sale: Decimal
    sell_price: Decimal
    realized_gain_loss: Decimal
    timestamp: datetime


class ValuePointResponse(BaseModel):
    """Cumulative invested value after a ledger entry."""

    timestamp: datetime
    value: Decimal


class IntegrityWarningResponse(BaseModel):
    """Disagreement between the ledger and stored holdings."""

    symbol: str
    detail: str


class AnalysisResponse(BaseModel):
    """Composite analysis report for an account."""

    account_id: str
    total_portfolio_value: Decimal
    holdings: list[HoldingPerformanceResponse] = Field(default_factory=list)
    activity: ActivitySummaryResponse
    realized_gains: list[RealizedGainResponse] = Field(default_factory=list)
    total_realized_gain_loss: Decimal
    portfolio_value_over_time: list[ValuePointResponse] = Field(default_factory=list)
    integrity_warnings: list[IntegrityWarningResponse] = Field(default_factory=list)
    generated_at: datetime
