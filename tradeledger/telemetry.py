"""OpenTelemetry metrics and logs for the trade ledger."""

import logging
import os
from decimal import Decimal

from opentelemetry import metrics
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from tradeledger._version import VERSION


# Module-level state
_initialized = False
_meter = None
_log_handler = None

# Counters (cumulative)
_trades_total = None
_trade_value_total = None
_trades_rejected_total = None
_trade_conflicts_total = None
_valuation_fallbacks_total = None
_integrity_warnings_total = None


def setup_telemetry() -> bool:
    """Initialize OpenTelemetry metrics and log export.

    Returns True if telemetry was initialized, False if disabled.
    """
    global _initialized, _meter, _log_handler
    global _trades_total, _trade_value_total, _trades_rejected_total
    global _trade_conflicts_total, _valuation_fallbacks_total, _integrity_warnings_total

    if _initialized:
        return True

    if os.getenv("OTLP_ENABLED", "true").lower() == "false":
        return False

    otlp_endpoint = os.getenv("OTLP_ENDPOINT", "http://localhost:4318/v1/metrics")
    export_interval = int(os.getenv("OTLP_EXPORT_INTERVAL", "5000"))

    resource = Resource.create({
        "service.name": "trade-ledger",
        "service.version": VERSION,
    })

    # === METRICS ===
    exporter = OTLPMetricExporter(endpoint=otlp_endpoint)
    reader = PeriodicExportingMetricReader(
        exporter,
        export_interval_millis=export_interval,
    )
    provider = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(provider)

    _meter = metrics.get_meter("trade_ledger", VERSION)

    _trades_total = _meter.create_counter(
        "ledger_trades_total",
        description="Total number of trades committed",
        unit="1",
    )

    _trade_value_total = _meter.create_counter(
        "ledger_trade_value_total",
        description="Total cash value of committed trades",
        unit="currency",
    )

    _trades_rejected_total = _meter.create_counter(
        "ledger_trades_rejected_total",
        description="Orders rejected by validation or funds/shares checks",
        unit="1",
    )

    _trade_conflicts_total = _meter.create_counter(
        "ledger_trade_conflicts_total",
        description="Trade attempts rolled back because of concurrent updates",
        unit="1",
    )

    _valuation_fallbacks_total = _meter.create_counter(
        "ledger_valuation_fallbacks_total",
        description="Holdings valued at average cost because no price was available",
        unit="1",
    )

    _integrity_warnings_total = _meter.create_counter(
        "ledger_integrity_warnings_total",
        description="Disagreements between ledger replay and stored holdings",
        unit="1",
    )

    # === LOGS ===
    logs_endpoint = otlp_endpoint.replace("/v1/metrics", "/v1/logs")
    log_exporter = OTLPLogExporter(endpoint=logs_endpoint)
    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(log_exporter))
    set_logger_provider(logger_provider)

    _log_handler = LoggingHandler(
        level=logging.INFO,
        logger_provider=logger_provider,
    )

    _initialized = True
    return True


def get_log_handler() -> LoggingHandler | None:
    """Get the OTLP logging handler to attach to Python loggers."""
    return _log_handler


def is_enabled() -> bool:
    """Check if telemetry is initialized and enabled."""
    return _initialized


# --- Counter update functions ---

def record_trade(symbol: str, side: str, amount: Decimal) -> None:
    """Record a committed trade."""
    if not _initialized:
        return

    attributes = {"symbol": symbol, "side": side}
    _trades_total.add(1, attributes)
    _trade_value_total.add(float(amount), attributes)


def record_trade_rejected(reason: str) -> None:
    """Record an order rejected before any state change."""
    if not _initialized:
        return

    _trades_rejected_total.add(1, {"reason": reason})


def record_trade_conflict(attempt: int) -> None:
    """Record a trade attempt lost to a concurrent update."""
    if not _initialized:
        return

    _trade_conflicts_total.add(1, {"attempt": attempt})


def record_valuation_fallback(symbol: str) -> None:
    """Record a holding valued at its average cost."""
    if not _initialized:
        return

    _valuation_fallbacks_total.add(1, {"symbol": symbol})


def record_integrity_warning(symbol: str) -> None:
    """Record a replay/holding disagreement."""
    if not _initialized:
        return

    _integrity_warnings_total.add(1, {"symbol": symbol})
