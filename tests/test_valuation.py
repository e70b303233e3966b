"""Tests for the valuation adapters."""

from decimal import Decimal

import httpx
import pytest

from tradeledger.errors import ValuationUnavailableError
from tradeledger.services.valuation import (
    AlphaVantagePriceSource,
    StaticPriceSource,
    parse_price,
)


def _source(handler):
    return AlphaVantagePriceSource(
        api_key="demo",
        base_url="https://prices.test/query",
        transport=httpx.MockTransport(handler),
    )


class TestParsePrice:
    """Tests for parse_price."""

    def test_parses_string(self):
        """Quoted strings become Decimals."""
        assert parse_price("AAPL", " 189.9800 ") == Decimal("189.9800")

    @pytest.mark.parametrize("raw", [None, "", "n/a", "0", "-3.5", "NaN", "Infinity"])
    def test_rejects_unusable(self, raw):
        """Missing, non-numeric and non-positive prices are unavailable."""
        with pytest.raises(ValuationUnavailableError) as exc_info:
            parse_price("AAPL", raw)
        assert exc_info.value.symbol == "AAPL"


class TestStaticPriceSource:
    """Tests for StaticPriceSource."""

    @pytest.mark.asyncio
    async def test_lookup_is_case_insensitive(self):
        """Symbols are matched after uppercasing."""
        source = StaticPriceSource({"aapl": "120.5"})
        assert await source.get_current_price("AAPL") == Decimal("120.5")

    @pytest.mark.asyncio
    async def test_unknown_symbol(self):
        """Unknown symbols have no price."""
        with pytest.raises(ValuationUnavailableError):
            await StaticPriceSource().get_current_price("MSFT")


class TestAlphaVantagePriceSource:
    """Tests for AlphaVantagePriceSource."""

    @pytest.mark.asyncio
    async def test_global_quote(self):
        """The latest price is read from the GLOBAL_QUOTE payload."""
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(
                200,
                json={"Global Quote": {"01. symbol": "AAPL", "05. price": "189.9800"}},
            )

        price = await _source(handler).get_current_price("AAPL")

        assert price == Decimal("189.9800")
        assert seen == {"function": "GLOBAL_QUOTE", "symbol": "AAPL", "apikey": "demo"}

    @pytest.mark.asyncio
    async def test_empty_quote(self):
        """An empty quote (unknown symbol or rate limit) is unavailable."""

        def handler(request):
            return httpx.Response(200, json={"Global Quote": {}})

        with pytest.raises(ValuationUnavailableError, match="no price data"):
            await _source(handler).get_current_price("ZZZZ")

    @pytest.mark.asyncio
    async def test_quote_is_not_an_object(self):
        """A note string in place of the quote is unavailable, not a crash."""

        def handler(request):
            return httpx.Response(200, json={"Global Quote": "rate limited"})

        with pytest.raises(ValuationUnavailableError, match="no price data"):
            await _source(handler).get_current_price("AAPL")

    @pytest.mark.asyncio
    async def test_http_error(self):
        """Server errors are unavailable, not raised as HTTP errors."""

        def handler(request):
            return httpx.Response(503, text="try later")

        with pytest.raises(ValuationUnavailableError, match="request failed"):
            await _source(handler).get_current_price("AAPL")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Garbage bodies are unavailable."""

        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(ValuationUnavailableError):
            await _source(handler).get_current_price("AAPL")

    @pytest.mark.asyncio
    async def test_zero_price(self):
        """A zero quote is not a usable price."""

        def handler(request):
            return httpx.Response(200, json={"Global Quote": {"05. price": "0.0000"}})

        with pytest.raises(ValuationUnavailableError, match="unusable price"):
            await _source(handler).get_current_price("AAPL")
