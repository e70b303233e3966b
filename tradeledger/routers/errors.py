"""Translate ledger errors into HTTP errors."""

from fastapi import HTTPException, status

from tradeledger.errors import (
    AccountNotFoundError,
    ConcurrencyConflictError,
    LedgerError,
    TradeRejectedError,
    ValidationError,
)


def to_http_exception(error: LedgerError) -> HTTPException:
    """Map a ledger error to an HTTPException with a structured detail."""
    if isinstance(error, AccountNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, (ValidationError, TradeRejectedError)):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, ConcurrencyConflictError):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=error.to_detail())
