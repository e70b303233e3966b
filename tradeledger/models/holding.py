"""
Holding model - an open position in one symbol.

Composite primary key (account_id, symbol). The row exists only while the
quantity is positive; avg_cost is the quantity-weighted mean acquisition
price of the shares currently held and is changed only by buys.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradeledger.database import Base


class Holding(Base):
    """Share position of an account in a symbol."""

    __tablename__ = "holdings"

    account_id: Mapped[str] = mapped_column(
        String, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True
    )
    symbol: Mapped[str] = mapped_column(String(10), primary_key=True)

    # Fractional shares are allowed
    quantity: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)

    # Weighted-average cost per share
    avg_cost: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)

    # Optimistic lock counter
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    account: Mapped["Account"] = relationship(back_populates="holdings")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_holding_quantity_positive"),
        CheckConstraint("avg_cost > 0", name="check_holding_avg_cost_positive"),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def cost_basis(self) -> Decimal:
        """Total amount paid for the shares still held."""
        return self.quantity * self.avg_cost

    def __repr__(self) -> str:
        return (
            f"Holding(account={self.account_id!r}, symbol={self.symbol!r}, "
            f"quantity={self.quantity}, avg_cost={self.avg_cost})"
        )


# Import at end to avoid circular imports
from tradeledger.models.account import Account
