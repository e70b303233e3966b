"""
Account model - a participant's cash account.

The identity is issued by the registration collaborator; the ledger only
owns the balance. Cash balance cannot go negative (no margin/credit) and is
changed only by trade execution.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradeledger.database import Base


class Account(Base):
    """A trader's cash account."""

    __tablename__ = "accounts"

    # Opaque identity from the registration collaborator
    id: Mapped[str] = mapped_column(String, primary_key=True)

    # API key hash for authentication (SHA-256 hash of the API key)
    api_key_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # Available cash for trading
    # Numeric(15,2) allows up to 999,999,999,999,999.99
    cash_balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )

    # Optimistic lock counter, bumped by SQLAlchemy on every UPDATE
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    # Relationships (deleting an account removes its positions and history)
    holdings: Mapped[list["Holding"]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )
    ledger_entries: Mapped[list["LedgerEntry"]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("cash_balance >= 0", name="check_cash_non_negative"),
    )
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"Account(id={self.id!r}, cash_balance={self.cash_balance})"


# Import at end to avoid circular imports
from tradeledger.models.holding import Holding
from tradeledger.models.ledger_entry import LedgerEntry
