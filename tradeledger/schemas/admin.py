"""Pydantic schemas for admin endpoints."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class AccountCreate(BaseModel):
    """Request schema for provisioning an account."""

    account_id: str = Field(..., min_length=1, max_length=255, description="Unique account ID")
    initial_cash: Decimal | None = Field(
        default=None,
        ge=0,
        decimal_places=2,
        description="Initial cash balance (default from settings)",
    )


class AccountResponse(BaseModel):
    """Response schema for newly created account (includes API key)."""

    account_id: str
    cash_balance: Decimal
    api_key: str
    created_at: datetime
