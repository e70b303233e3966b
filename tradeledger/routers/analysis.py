"""Analysis API endpoints - requires authentication."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.auth import get_current_account
from tradeledger.database import get_session
from tradeledger.errors import LedgerError
from tradeledger.models import Account
from tradeledger.routers.errors import to_http_exception
from tradeledger.schemas.analysis import (
    ActivitySummaryResponse,
    AnalysisResponse,
    HoldingPerformanceResponse,
    IntegrityWarningResponse,
    RealizedGainResponse,
    ValuePointResponse,
)
from tradeledger.services import replay
from tradeledger.services.valuation import PriceSource, get_price_source

router = APIRouter()


@router.get(
    "/analysis",
    response_model=AnalysisResponse,
    summary="Analyze my trading",
)
async def get_analysis(
    account: Account = Depends(get_current_account),
    session: AsyncSession = Depends(get_session),
    price_source: PriceSource = Depends(get_price_source),
) -> AnalysisResponse:
    """Get realized and unrealized gains, activity and value over time.

    **What the numbers mean:**
    - **total_portfolio_value**: What your shares are worth right now
    - **holdings**: Each position marked to the current price; rows with
      `degraded=true` had no price and are valued at your average cost
    - **realized_gains**: Profit or loss locked in by each sell
    - **portfolio_value_over_time**: Money invested after each trade
    - **integrity_warnings**: Places where your history and holdings disagree
    """
    try:
        report = await replay.analyze(session, account.id, price_source)
    except LedgerError as e:
        raise to_http_exception(e)

    return AnalysisResponse(
        account_id=report.account_id,
        total_portfolio_value=report.total_portfolio_value,
        holdings=[
            HoldingPerformanceResponse(
                symbol=h.symbol,
                quantity=h.quantity,
                avg_cost=h.avg_cost,
                current_price=h.current_price,
                current_value=h.current_value,
                unrealized_gain_loss=h.unrealized_gain_loss,
                degraded=h.degraded,
                degraded_reason=h.degraded_reason,
            )
            for h in report.holdings
        ],
        activity=ActivitySummaryResponse(
            total_trades=report.activity.total_trades,
            buys=report.activity.buys,
            sells=report.activity.sells,
            most_traded_symbol=report.activity.most_traded_symbol,
        ),
        realized_gains=[
            RealizedGainResponse(
                symbol=g.symbol,
                quantity_sold=g.quantity_sold,
                avg_cost_at_sale=g.avg_cost_at_sale,
                sell_price=g.sell_price,
                realized_gain_loss=g.realized_gain_loss,
                timestamp=g.timestamp,
            )
            for g in report.realized_gains
        ],
        total_realized_gain_loss=report.total_realized_gain_loss,
        portfolio_value_over_time=[
            ValuePointResponse(timestamp=p.timestamp, value=p.value)
            for p in report.portfolio_value_over_time
        ],
        integrity_warnings=[
            IntegrityWarningResponse(symbol=w.symbol, detail=w.detail)
            for w in report.integrity_warnings
        ],
        generated_at=report.generated_at,
    )
