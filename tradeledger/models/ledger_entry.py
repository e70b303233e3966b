"""
LedgerEntry model - immutable record of an executed trade.

Single source of truth for trading history. Entries are append-only (never
modified or deleted, except when the owning account is deleted) and can be
replayed in (timestamp, id) order to rebuild every holding.
"""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradeledger.database import Base


class TradeSide(enum.Enum):
    """Buy or sell."""

    BUY = "BUY"
    SELL = "SELL"


class LedgerEntry(Base):
    """One executed trade on one account."""

    __tablename__ = "ledger_entries"

    # Always-increasing key, tie-break for entries with equal timestamps
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    symbol: Mapped[str] = mapped_column(String(10), nullable=False)

    # Unsigned number of shares traded
    quantity: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)

    # Execution price per share
    price: Mapped[Decimal] = mapped_column(Numeric(15, 4), nullable=False)

    side: Mapped[TradeSide] = mapped_column(Enum(TradeSide), nullable=False)

    # Cash effect: negative for buys, positive for sells
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    # Cash balance once this entry was applied
    balance_after: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    description: Mapped[str] = mapped_column(String(255), nullable=False)

    account: Mapped["Account"] = relationship(back_populates="ledger_entries")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_entry_quantity_positive"),
        CheckConstraint("price > 0", name="check_entry_price_positive"),
        CheckConstraint("balance_after >= 0", name="check_entry_balance_non_negative"),
        Index("ix_ledger_entries_account_order", "account_id", "timestamp", "id"),
    )

    @property
    def gross_value(self) -> Decimal:
        """Unsigned trade value (quantity * price) before rounding."""
        return self.quantity * self.price

    def __repr__(self) -> str:
        return (
            f"LedgerEntry(id={self.id!r}, {self.side.value} {self.quantity} "
            f"{self.symbol} @ {self.price}, balance_after={self.balance_after})"
        )


# Import at end to avoid circular imports
from tradeledger.models.account import Account
