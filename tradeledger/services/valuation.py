"""Valuation adapter - current market prices for held symbols.

The replay engine only needs `get_current_price(symbol)`. Any source that
cannot produce a usable positive price raises ValuationUnavailableError; the
caller decides how to degrade.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

import httpx

from tradeledger.config import get_settings
from tradeledger.errors import ValuationUnavailableError

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    """Anything that can quote a current price for a symbol."""

    async def get_current_price(self, symbol: str) -> Decimal:
        ...


def parse_price(symbol: str, raw: Any) -> Decimal:
    """Parse a quoted price, rejecting missing, non-numeric and non-positive values."""
    if raw is None:
        raise ValuationUnavailableError(symbol, "no price data")
    try:
        price = Decimal(str(raw).strip())
    except InvalidOperation:
        raise ValuationUnavailableError(symbol, f"unparsable price {raw!r}")
    if not price.is_finite() or price <= 0:
        raise ValuationUnavailableError(symbol, f"unusable price {raw!r}")
    return price


class StaticPriceSource:
    """Fixed price table, for offline use and tests."""

    def __init__(self, prices: dict[str, Decimal | str | float] | None = None):
        self.prices = {s.upper(): p for s, p in (prices or {}).items()}

    async def get_current_price(self, symbol: str) -> Decimal:
        return parse_price(symbol, self.prices.get(symbol.upper()))


class AlphaVantagePriceSource:
    """Latest price from the Alpha Vantage GLOBAL_QUOTE endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.alphavantage.co/query",
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def get_current_price(self, symbol: str) -> Decimal:
        params = {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Price lookup failed",
                extra={"symbol": symbol, "error": str(e)},
            )
            raise ValuationUnavailableError(symbol, f"request failed: {e}") from e

        quote = payload.get("Global Quote") if isinstance(payload, dict) else None
        # Rate-limit and error responses carry a note string instead of a quote
        if not quote or not isinstance(quote, dict):
            raise ValuationUnavailableError(symbol, "no price data available")
        return parse_price(symbol, quote.get("05. price"))


def get_price_source() -> PriceSource:
    """Dependency that provides the configured price source.

    Usage in FastAPI:
        @app.get("/example")
        async def example(prices: PriceSource = Depends(get_price_source)):
            ...
    """
    settings = get_settings()
    if settings.valuation_provider == "static":
        return StaticPriceSource()
    return AlphaVantagePriceSource(
        api_key=settings.alpha_vantage_key,
        base_url=settings.alpha_vantage_url,
        timeout=settings.valuation_timeout,
    )
