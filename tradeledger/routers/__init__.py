"""API routers."""

from tradeledger.routers.admin import router as admin_router
from tradeledger.routers.analysis import router as analysis_router
from tradeledger.routers.trader import router as trader_router

__all__ = ["admin_router", "analysis_router", "trader_router"]
