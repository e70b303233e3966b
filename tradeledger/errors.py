"""Error taxonomy for the trade ledger.

Trade errors are raised before or instead of any state change: the unit of
work that raised them is rolled back. IntegrityWarning is never raised; replay
and reconciliation collect and log it.
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """Base class for ledger errors."""

    code = "ledger_error"

    def to_detail(self) -> dict[str, Any]:
        """Machine-readable description for API responses."""
        return {"error": self.code, "message": str(self)}


class ValidationError(LedgerError):
    """Malformed trade input. Never partially applied."""

    code = "validation_error"


class AccountNotFoundError(ValidationError):
    """The account does not exist."""

    code = "account_not_found"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account '{account_id}' does not exist")


class TradeRejectedError(LedgerError):
    """Well-formed order that the account cannot satisfy."""

    code = "trade_rejected"


class InsufficientFundsError(TradeRejectedError):
    """Buy amount exceeds the cash balance."""

    code = "insufficient_funds"

    def __init__(self, required: Decimal, available: Decimal):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient funds. Required: ${required:.2f}, Available: ${available:.2f}"
        )

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail.update(required=str(self.required), available=str(self.available))
        return detail


class NoPositionError(TradeRejectedError):
    """Sell of a symbol the account does not hold."""

    code = "no_position"

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Cannot sell {symbol}: not in portfolio")

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["symbol"] = self.symbol
        return detail


class InsufficientSharesError(TradeRejectedError):
    """Sell quantity exceeds the held quantity."""

    code = "insufficient_shares"

    def __init__(self, symbol: str, requested: Decimal, available: Decimal):
        self.symbol = symbol
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient shares of {symbol}. Requested: {requested}, Available: {available}"
        )

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail.update(
            symbol=self.symbol,
            requested=str(self.requested),
            available=str(self.available),
        )
        return detail


class ConcurrencyConflictError(LedgerError):
    """Optimistic-lock retries exhausted. The whole trade may be retried."""

    code = "concurrency_conflict"

    def __init__(self, account_id: str, attempts: int):
        self.account_id = account_id
        self.attempts = attempts
        super().__init__(
            f"Trade on account '{account_id}' conflicted with concurrent updates "
            f"{attempts} time(s); retry the order"
        )


class ValuationUnavailableError(LedgerError):
    """No usable current price for a symbol."""

    code = "valuation_unavailable"

    def __init__(self, symbol: str, reason: str):
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"No current price for {symbol}: {reason}")


class IntegrityWarning(UserWarning):
    """Ledger history and stored state disagree.

    Non-fatal. Surfaced to operators through logs and analysis reports.
    """

    def __init__(self, account_id: str, symbol: str, detail: str):
        self.account_id = account_id
        self.symbol = symbol
        self.detail = detail
        super().__init__(f"[{account_id}/{symbol}] {detail}")
