"""Pydantic schemas for request/response validation."""

from tradeledger.schemas.admin import AccountCreate, AccountResponse
from tradeledger.schemas.analysis import (
    ActivitySummaryResponse,
    AnalysisResponse,
    HoldingPerformanceResponse,
    IntegrityWarningResponse,
    RealizedGainResponse,
    ValuePointResponse,
)
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
    TradeSide,
)

__all__ = [
    # Admin schemas
    "AccountCreate",
    "AccountResponse",
    # Trade schemas
    "TradeSide",
    "TradeCreate",
    "TradeRequest",
    "TradeResponse",
    "HoldingSnapshot",
    # Portfolio schemas
    "AccountInfoResponse",
    "HoldingResponse",
    "PortfolioResponse",
    "TransactionResponse",
    "TransactionsResponse",
    # Analysis schemas
    "AnalysisResponse",
    "HoldingPerformanceResponse",
    "ActivitySummaryResponse",
    "RealizedGainResponse",
    "ValuePointResponse",
    "IntegrityWarningResponse",
]
