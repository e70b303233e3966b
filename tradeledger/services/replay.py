"""Cost-basis replay engine - analytics derived from the ledger.

Everything here is recomputed from an account's full ledger history, which is
the source of truth: realized gain/loss with the average-cost method, the
cost-flow portfolio value curve, trading activity counts, and a reconciliation
of the replayed positions against the stored holdings. Only the unrealized
section uses live prices, and a missing price degrades a single holding row
instead of failing the report.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, UTC
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger import telemetry
from tradeledger.config import get_settings
from tradeledger.errors import (
    AccountNotFoundError,
    ConcurrencyConflictError,
    IntegrityWarning,
    ValuationUnavailableError,
)
from tradeledger.models import Account, Holding, LedgerEntry, TradeSide
from tradeledger.services import ledger
from tradeledger.services.execution import AVG_COST_QUANTUM, QUANTITY_EPSILON, quantize_cents
from tradeledger.services.valuation import PriceSource

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Re-reads allowed when trades commit while a snapshot is being taken
SNAPSHOT_ATTEMPTS = 5


@dataclass
class PositionState:
    """Running position of one symbol during replay."""

    quantity: Decimal = ZERO
    cost_basis: Decimal = ZERO

    @property
    def avg_cost(self) -> Decimal:
        if self.quantity <= ZERO:
            return ZERO
        return self.cost_basis / self.quantity


@dataclass
class RealizedGain:
    """Gain or loss locked in by one sell."""

    symbol: str
    quantity_sold: Decimal
    avg_cost_at_sale: Decimal
    sell_price: Decimal
    realized_gain_loss: Decimal
    timestamp: datetime


@dataclass
class ValuePoint:
    """Cumulative invested value after one ledger entry."""

    timestamp: datetime
    value: Decimal


@dataclass
class ActivitySummary:
    """Trade counts for an account."""

    total_trades: int
    buys: int
    sells: int
    most_traded_symbol: str | None


@dataclass
class HoldingPerformance:
    """A live holding marked to the current price."""

    symbol: str
    quantity: Decimal
    avg_cost: Decimal
    current_price: Decimal
    current_value: Decimal
    unrealized_gain_loss: Decimal
    degraded: bool = False
    degraded_reason: str | None = None


@dataclass
class AnalysisReport:
    """Composite analysis of an account's trading."""

    account_id: str
    total_portfolio_value: Decimal
    holdings: list[HoldingPerformance]
    activity: ActivitySummary
    realized_gains: list[RealizedGain]
    portfolio_value_over_time: list[ValuePoint]
    integrity_warnings: list[IntegrityWarning] = field(default_factory=list)
    generated_at: datetime = field(
        default_factory=lambda: datetime.now(UTC).replace(tzinfo=None)
    )

    @property
    def total_realized_gain_loss(self) -> Decimal:
        return sum((g.realized_gain_loss for g in self.realized_gains), Decimal("0.00"))

    @property
    def degraded_symbols(self) -> list[str]:
        return [h.symbol for h in self.holdings if h.degraded]


# ============================================================================
# Pure replay passes
# ============================================================================


def replay_realized_gains(
    entries: Iterable[LedgerEntry],
) -> tuple[list[RealizedGain], dict[str, PositionState], list[IntegrityWarning]]:
    """Replay entries in order, tracking each symbol's average cost.

    Args:
        entries: Ledger entries in replay order

    Returns:
        Tuple of (realized gains, final position per symbol, integrity warnings)
    """
    positions: dict[str, PositionState] = {}
    gains: list[RealizedGain] = []
    warnings: list[IntegrityWarning] = []

    for entry in entries:
        position = positions.setdefault(entry.symbol, PositionState())

        if entry.side == TradeSide.BUY:
            position.quantity += entry.quantity
            position.cost_basis += entry.gross_value
            continue

        if position.quantity <= ZERO:
            warnings.append(
                IntegrityWarning(
                    entry.account_id,
                    entry.symbol,
                    f"ledger entry {entry.id} sells {entry.quantity} shares "
                    f"with no prior holding in history",
                )
            )
            continue

        avg_cost_at_sale = position.cost_basis / position.quantity
        sold = min(entry.quantity, position.quantity)
        if entry.quantity > position.quantity:
            warnings.append(
                IntegrityWarning(
                    entry.account_id,
                    entry.symbol,
                    f"ledger entry {entry.id} sells {entry.quantity} shares "
                    f"but history only holds {position.quantity}",
                )
            )

        gains.append(
            RealizedGain(
                symbol=entry.symbol,
                quantity_sold=sold,
                avg_cost_at_sale=avg_cost_at_sale.quantize(
                    AVG_COST_QUANTUM, rounding=ROUND_HALF_UP
                ),
                sell_price=entry.price,
                realized_gain_loss=quantize_cents((entry.price - avg_cost_at_sale) * sold),
                timestamp=entry.timestamp,
            )
        )

        position.quantity -= sold
        position.cost_basis -= avg_cost_at_sale * sold
        if position.quantity < QUANTITY_EPSILON:
            position.quantity = ZERO
            position.cost_basis = ZERO

    return gains, positions, warnings


def replay_portfolio_value(entries: Iterable[LedgerEntry]) -> list[ValuePoint]:
    """Cost-flow curve: buys add quantity * price, sells subtract it.

    Uses the ledger's own prices, not market prices.
    """
    value = ZERO
    points: list[ValuePoint] = []
    for entry in entries:
        if entry.side == TradeSide.BUY:
            value += entry.gross_value
        else:
            value -= entry.gross_value
        points.append(ValuePoint(timestamp=entry.timestamp, value=quantize_cents(value)))
    return points


def summarize_activity(entries: Iterable[LedgerEntry]) -> ActivitySummary:
    """Count trades by side and find the most traded symbol.

    Ties go to the alphabetically first symbol.
    """
    sides: Counter[TradeSide] = Counter()
    symbols: Counter[str] = Counter()
    for entry in entries:
        sides[entry.side] += 1
        symbols[entry.symbol] += 1

    most_traded = None
    max_count = 0
    for symbol in sorted(symbols):
        if symbols[symbol] > max_count:
            most_traded = symbol
            max_count = symbols[symbol]

    return ActivitySummary(
        total_trades=sides.total(),
        buys=sides[TradeSide.BUY],
        sells=sides[TradeSide.SELL],
        most_traded_symbol=most_traded,
    )


def reconcile_holdings(
    account_id: str,
    positions: dict[str, PositionState],
    holdings: Iterable[Holding],
    tolerance: Decimal,
) -> list[IntegrityWarning]:
    """Compare replayed positions with the stored holdings.

    Quantities must agree exactly (within the zero epsilon); average costs
    within `tolerance`, since the stored value is rounded on every buy.
    """
    live = {h.symbol: h for h in holdings}
    replayed = {s: p for s, p in positions.items() if p.quantity > QUANTITY_EPSILON}
    warnings: list[IntegrityWarning] = []

    for symbol in sorted(set(live) | set(replayed)):
        holding = live.get(symbol)
        position = replayed.get(symbol)

        if holding is None:
            detail = f"ledger replay holds {position.quantity} shares but no holding is stored"
        elif position is None:
            detail = f"stored holding of {holding.quantity} shares has no ledger history"
        elif abs(holding.quantity - position.quantity) > QUANTITY_EPSILON:
            detail = (
                f"stored quantity {holding.quantity} differs from "
                f"replayed quantity {position.quantity}"
            )
        elif abs(holding.avg_cost - position.avg_cost) > tolerance:
            detail = (
                f"stored average cost {holding.avg_cost} differs from replayed "
                f"average cost {position.avg_cost.quantize(AVG_COST_QUANTUM)}"
            )
        else:
            continue

        warnings.append(IntegrityWarning(account_id, symbol, detail))

    return warnings


# ============================================================================
# Valuation
# ============================================================================


async def value_holding(
    price_source: PriceSource, holding: Holding, timeout: float
) -> HoldingPerformance:
    """Mark one holding to market, falling back to its average cost."""
    reason = None
    try:
        current_price = await asyncio.wait_for(
            price_source.get_current_price(holding.symbol), timeout
        )
    except TimeoutError:
        reason = f"price lookup timed out after {timeout}s"
    except ValuationUnavailableError as e:
        reason = e.reason
    except Exception as e:
        logger.exception(
            "Price source failed", extra={"symbol": holding.symbol}
        )
        reason = f"price source error: {e}"

    if reason is not None:
        logger.warning(
            "Valuing holding at average cost",
            extra={"symbol": holding.symbol, "reason": reason},
        )
        telemetry.record_valuation_fallback(holding.symbol)
        current_price = holding.avg_cost

    return HoldingPerformance(
        symbol=holding.symbol,
        quantity=holding.quantity,
        avg_cost=holding.avg_cost,
        current_price=current_price,
        current_value=quantize_cents(current_price * holding.quantity),
        unrealized_gain_loss=quantize_cents(
            (current_price - holding.avg_cost) * holding.quantity
        ),
        degraded=reason is not None,
        degraded_reason=reason,
    )


# ============================================================================
# Analysis
# ============================================================================


async def load_snapshot(
    session: AsyncSession, account_id: str
) -> tuple[list[Holding], list[LedgerEntry]]:
    """Read holdings and ledger entries that belong to the same committed state.

    Every committed trade bumps the account version, so equal versions before
    and after the reads mean no trade landed in between.

    Raises:
        AccountNotFoundError: If the account does not exist
        ConcurrencyConflictError: If trades kept landing during every attempt
    """
    for _ in range(SNAPSHOT_ATTEMPTS):
        version = await _account_version(session, account_id)
        if version is None:
            raise AccountNotFoundError(account_id)

        holdings = await ledger.get_account_holdings(session, account_id)
        entries = await ledger.get_ordered_history(session, account_id)

        if await _account_version(session, account_id) == version:
            return holdings, entries

    raise ConcurrencyConflictError(account_id, SNAPSHOT_ATTEMPTS)


async def analyze(
    session: AsyncSession,
    account_id: str,
    price_source: PriceSource,
    *,
    price_timeout: float | None = None,
    tolerance: Decimal | None = None,
) -> AnalysisReport:
    """Build the analysis report for an account.

    Args:
        session: Database session (read only)
        account_id: Account ID
        price_source: Valuation adapter for current prices
        price_timeout: Per-symbol price timeout in seconds (default from settings)
        tolerance: Allowed average-cost drift in reconciliation (default from settings)

    Returns:
        The analysis report

    Raises:
        AccountNotFoundError: If the account does not exist
    """
    settings = get_settings()
    if price_timeout is None:
        price_timeout = settings.valuation_timeout
    if tolerance is None:
        tolerance = settings.reconcile_tolerance

    holdings, entries = await load_snapshot(session, account_id)

    realized, positions, warnings = replay_realized_gains(entries)
    warnings.extend(reconcile_holdings(account_id, positions, holdings, tolerance))
    for warning in warnings:
        logger.warning(
            "Ledger integrity warning",
            extra={
                "account_id": warning.account_id,
                "symbol": warning.symbol,
                "detail": warning.detail,
            },
        )
        telemetry.record_integrity_warning(warning.symbol)

    performance = await asyncio.gather(
        *(value_holding(price_source, h, price_timeout) for h in holdings)
    )

    return AnalysisReport(
        account_id=account_id,
        total_portfolio_value=sum(
            (p.current_value for p in performance), Decimal("0.00")
        ),
        holdings=list(performance),
        activity=summarize_activity(entries),
        realized_gains=realized,
        portfolio_value_over_time=replay_portfolio_value(entries),
        integrity_warnings=warnings,
    )


async def _account_version(session: AsyncSession, account_id: str) -> int | None:
    result = await session.execute(
        select(Account.version).where(Account.id == account_id)
    )
    return result.scalar_one_or_none()
