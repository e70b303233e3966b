"""
FastAPI application entry point.

Run with: uvicorn tradeledger.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tradeledger._version import VERSION
from tradeledger.database import init_db

# Import models to ensure they're registered with SQLAlchemy
from tradeledger.models import Account, Holding, LedgerEntry  # noqa: F401
from tradeledger.routers import admin_router, analysis_router, trader_router
from tradeledger import telemetry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Startup: Create database tables if they don't exist, initialize telemetry.
    Shutdown: (nothing to clean up for now)
    """
    await init_db()
    logger.info("Database initialized")

    if telemetry.setup_telemetry():
        # Attach OTLP handler to root logger for log export
        handler = telemetry.get_log_handler()
        if handler:
            logging.getLogger().addHandler(handler)
            logging.getLogger().setLevel(logging.INFO)
        logger.info("Telemetry initialized (OTLP metrics + logs enabled)")
    else:
        logger.info("Telemetry disabled")

    yield

    logger.info("Application shutting down")


app = FastAPI(
    title="Trade Ledger API",
    description="Cash and share ledger with average-cost accounting",
    version=VERSION,
    lifespan=lifespan,
)


# Admin routes stay at /admin (no API versioning for admin)
app.include_router(admin_router, prefix="/admin", tags=["admin"])
app.include_router(trader_router, prefix="/api/v1", tags=["trader"])
app.include_router(analysis_router, prefix="/api/v1", tags=["analysis"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/api/version")
async def get_version():
    """Get API version information."""
    return {
        "version": VERSION,
        "api_version": "v1",
    }
