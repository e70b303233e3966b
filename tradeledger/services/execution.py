"""Trade execution engine.

Applies one buy or sell order to one account as a single unit of work:
1. Lock and load the account and the (account, symbol) holding
2. Check funds (BUY) or position size (SELL)
3. Update the balance and the holding using the average-cost method
4. Append exactly one ledger entry with the signed amount and resulting balance
5. Commit, or roll back everything on any failure

Concurrent trades on the same account are serialized by row locks where the
database supports them and by optimistic version checks everywhere; a trade
that loses a version race is rolled back and replayed from step 1.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, UTC
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP, ROUND_UP

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from tradeledger import telemetry
from tradeledger.config import get_settings
from tradeledger.errors import (
    AccountNotFoundError,
    ConcurrencyConflictError,
    InsufficientFundsError,
    InsufficientSharesError,
    LedgerError,
    NoPositionError,
    ValidationError,
)
from tradeledger.models import Holding, LedgerEntry, TradeSide
from tradeledger.schemas.trade import TradeRequest
from tradeledger.services import ledger

logger = logging.getLogger(__name__)

# Quantities at or below this are treated as zero
QUANTITY_EPSILON = Decimal("1e-9")

CENT = Decimal("0.01")
AVG_COST_QUANTUM = Decimal("0.00000001")

# Driver messages that mean "another transaction got there first"
_CONFLICT_MARKERS = (
    "database is locked",
    "could not serialize",
    "deadlock detected",
)


@dataclass
class HoldingState:
    """Position left after a trade."""

    quantity: Decimal
    avg_cost: Decimal


@dataclass
class TradeResult:
    """Outcome of a committed trade."""

    entry_id: int
    symbol: str
    side: TradeSide
    quantity: Decimal
    price: Decimal
    amount: Decimal
    new_balance: Decimal
    new_holding: HoldingState | None
    timestamp: datetime
    description: str


def quantize_cents(value: Decimal) -> Decimal:
    """Round a cash amount to cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def trade_amount(side: TradeSide, quantity: Decimal, price: Decimal) -> Decimal:
    """Cash moved by a trade, in cents.

    Rounded against the trader (buys up, sells down) so that repeated
    fractional trades can never create cash.

    Raises:
        ValidationError: If the order is worth less than one cent
    """
    value = quantity * price
    if value < CENT:
        raise ValidationError(
            f"Invalid order: value {value.normalize():f} is below the minimum of $0.01"
        )
    rounding = ROUND_UP if side == TradeSide.BUY else ROUND_DOWN
    return value.quantize(CENT, rounding=rounding)


def weighted_average_cost(
    held_quantity: Decimal, held_avg_cost: Decimal, quantity: Decimal, price: Decimal
) -> Decimal:
    """Blend a new acquisition into an existing average cost."""
    total_quantity = held_quantity + quantity
    total_cost = held_quantity * held_avg_cost + quantity * price
    return (total_cost / total_quantity).quantize(AVG_COST_QUANTUM, rounding=ROUND_HALF_UP)


def describe_trade(side: TradeSide, quantity: Decimal, symbol: str, price: Decimal) -> str:
    """Human-readable ledger description, e.g. 'BUY 10 shares of AAPL at $100'."""
    return f"{side.value} {quantity.normalize():f} shares of {symbol} at ${price.normalize():f}"


def build_request(
    account_id: str,
    symbol: str,
    quantity: Decimal | int | str,
    price: Decimal | int | str,
    side: TradeSide | str,
) -> TradeRequest:
    """Validate raw order fields into a TradeRequest.

    Raises:
        ValidationError: If any field is malformed
    """
    if isinstance(side, TradeSide):
        side = side.value
    try:
        return TradeRequest(
            account_id=account_id,
            symbol=symbol,
            quantity=quantity,
            price=price,
            side=side,
        )
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid order: {problems}") from e


async def execute(
    session: AsyncSession,
    account_id: str,
    symbol: str,
    quantity: Decimal | int | str,
    price: Decimal | int | str,
    side: TradeSide | str,
    *,
    max_attempts: int | None = None,
) -> TradeResult:
    """Validate and execute an order.

    Raises:
        ValidationError: Malformed input or unknown account
        InsufficientFundsError, NoPositionError, InsufficientSharesError
        ConcurrencyConflictError: Retries exhausted
    """
    try:
        request = build_request(account_id, symbol, quantity, price, side)
    except ValidationError:
        telemetry.record_trade_rejected(ValidationError.code)
        raise
    return await execute_trade(session, request, max_attempts=max_attempts)


async def execute_trade(
    session: AsyncSession,
    request: TradeRequest,
    *,
    max_attempts: int | None = None,
) -> TradeResult:
    """Execute a validated order as one atomic unit of work.

    The session must not hold uncommitted changes: the trade commits on
    success and rolls back on every failure path.

    Args:
        session: Database session (one unit of work per attempt)
        request: Validated order
        max_attempts: Attempts before giving up on conflicts (default from settings)

    Returns:
        The committed trade
    """
    attempts = max_attempts or get_settings().trade_max_attempts
    last_conflict: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            result = await _apply_trade(session, request)
            await session.commit()
        except LedgerError as e:
            await session.rollback()
            telemetry.record_trade_rejected(e.code)
            logger.info(
                "Trade rejected",
                extra={
                    "account_id": request.account_id,
                    "symbol": request.symbol,
                    "side": request.side.value,
                    "reason": e.code,
                },
            )
            raise
        except (StaleDataError, DBAPIError) as e:
            await session.rollback()
            if not _is_conflict(e):
                raise
            last_conflict = e
            telemetry.record_trade_conflict(attempt)
            logger.warning(
                "Trade conflicted with a concurrent update",
                extra={
                    "account_id": request.account_id,
                    "symbol": request.symbol,
                    "attempt": attempt,
                },
            )
            continue
        except Exception:
            await session.rollback()
            raise

        telemetry.record_trade(result.symbol, result.side.value, result.amount)
        logger.info(
            "Trade executed",
            extra={
                "entry_id": result.entry_id,
                "account_id": request.account_id,
                "symbol": result.symbol,
                "side": result.side.value,
                "quantity": str(result.quantity),
                "price": str(result.price),
                "amount": str(result.amount),
                "balance_after": str(result.new_balance),
            },
        )
        return result

    raise ConcurrencyConflictError(request.account_id, attempts) from last_conflict


async def _apply_trade(session: AsyncSession, request: TradeRequest) -> TradeResult:
    """Apply the order inside the current transaction and flush it.

    Raises a LedgerError before writing anything if the order cannot be filled.
    """
    side = TradeSide(request.side.value)
    symbol = request.symbol
    quantity = request.quantity
    price = request.price
    amount = trade_amount(side, quantity, price)

    account = await ledger.get_account(session, request.account_id, for_update=True)
    if account is None:
        raise AccountNotFoundError(request.account_id)

    holding = await ledger.get_holding(session, account.id, symbol, for_update=True)
    balance = account.cash_balance

    if side == TradeSide.BUY:
        if amount > balance:
            raise InsufficientFundsError(required=amount, available=balance)

        if holding is None:
            holding = Holding(
                account_id=account.id,
                symbol=symbol,
                quantity=quantity,
                avg_cost=price,
            )
            session.add(holding)
        else:
            holding.avg_cost = weighted_average_cost(
                holding.quantity, holding.avg_cost, quantity, price
            )
            holding.quantity = holding.quantity + quantity

        new_balance = balance - amount
        signed_amount = -amount

    else:  # SELL
        if holding is None:
            raise NoPositionError(symbol)
        if quantity > holding.quantity:
            raise InsufficientSharesError(
                symbol, requested=quantity, available=holding.quantity
            )

        # Average cost is unchanged by a sell
        remaining = holding.quantity - quantity
        if remaining <= QUANTITY_EPSILON:
            await session.delete(holding)
            holding = None
        else:
            holding.quantity = remaining

        new_balance = balance + amount
        signed_amount = amount

    account.cash_balance = new_balance

    entry = LedgerEntry(
        account_id=account.id,
        symbol=symbol,
        quantity=quantity,
        price=price,
        side=side,
        amount=signed_amount,
        balance_after=new_balance,
        timestamp=datetime.now(UTC).replace(tzinfo=None),
        description=describe_trade(side, quantity, symbol, price),
    )
    session.add(entry)
    await session.flush()

    return TradeResult(
        entry_id=entry.id,
        symbol=symbol,
        side=side,
        quantity=quantity,
        price=price,
        amount=amount,
        new_balance=new_balance,
        new_holding=(
            HoldingState(quantity=holding.quantity, avg_cost=holding.avg_cost)
            if holding is not None
            else None
        ),
        timestamp=entry.timestamp,
        description=entry.description,
    )


def _is_conflict(exc: Exception) -> bool:
    """Whether a storage error means a concurrent writer won the race."""
    if isinstance(exc, StaleDataError):
        return True
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in _CONFLICT_MARKERS)
