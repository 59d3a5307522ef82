from datetime import date

import httpx
import pytest

from core.protocols import MarketDataError
from plugins.market_data.yahoo_finance import YahooFinanceProvider


def chart_payload(price=253.6, previous_close=256.0, highs=(250.0, None, 260.1, 255.0), closes=(), **meta):
    return {
        "chart": {
            "result": [{
                "meta": {
                    "regularMarketPrice": price,
                    "previousClose": previous_close,
                    "shortName": "Apple Inc.",
                    "marketCap": 3.75e12,
                    # 2025-03-10 20:00 UTC, 16:00 New York
                    "regularMarketTime": 1741636800,
                    "gmtoffset": -14400,
                    **meta,
                },
                "indicators": {"quote": [{"high": list(highs), "close": list(closes)}]},
            }],
            "error": None,
        }
    }


def make_provider(handler) -> YahooFinanceProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return YahooFinanceProvider(history_range="2y", client=client)


async def test_parses_chart_result():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=chart_payload())

    provider = make_provider(handler)
    quote = await provider.fetch_quote("aapl")
    await provider.close()

    assert quote.symbol == "AAPL"
    assert quote.name == "Apple Inc."
    assert quote.price == 253.6
    assert quote.previous_close == 256.0
    assert quote.market_cap == 3.75e12
    assert quote.period_high == 260.1
    assert quote.session_date == date(2025, 3, 10)
    assert quote.source == "yahoo_finance"
    assert seen[0].url.path.endswith("/AAPL")
    assert seen[0].url.params["range"] == "2y"
    assert seen[0].url.params["interval"] == "1d"


async def test_chart_previous_close_used_without_daily_closes():
    payload = chart_payload(previous_close=None, chartPreviousClose=250.0)
    provider = make_provider(lambda request: httpx.Response(200, json=payload))

    quote = await provider.fetch_quote("^IXIC")
    assert quote.previous_close == 250.0
    assert quote.market_cap == 3.75e12


async def test_previous_close_from_daily_closes():
    # A one-year chart: chartPreviousClose is a year old, yesterday closed at 20000.
    payload = chart_payload(
        price=19000.0,
        previous_close=None,
        chartPreviousClose=15000.0,
        closes=(18500.0, 20000.0, None, 19000.0),
    )
    provider = make_provider(lambda request: httpx.Response(200, json=payload))

    quote = await provider.fetch_quote("^IXIC")

    assert quote.previous_close == 20000.0
    assert (quote.price - quote.previous_close) / quote.previous_close * 100 == pytest.approx(-5.0)


async def test_meta_previous_close_wins_over_daily_closes():
    payload = chart_payload(previous_close=256.0, closes=(250.0, 251.0, 253.6))
    provider = make_provider(lambda request: httpx.Response(200, json=payload))
    assert (await provider.fetch_quote("AAPL")).previous_close == 256.0


async def test_no_highs_means_no_period_high():
    provider = make_provider(lambda request: httpx.Response(200, json=chart_payload(highs=())))
    assert (await provider.fetch_quote("AAPL")).period_high is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404, json={"chart": {"result": None, "error": {"code": "Not Found"}}}),
        httpx.Response(200, json={"chart": {"result": [], "error": None}}),
        httpx.Response(200, text="<html>rate limited</html>"),
        httpx.Response(200, json=chart_payload(price=None)),
    ],
)
async def test_bad_responses_raise(response):
    provider = make_provider(lambda request: response)
    with pytest.raises(MarketDataError):
        await provider.fetch_quote("AAPL")


async def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(MarketDataError, match="request failed"):
        await make_provider(handler).fetch_quote("AAPL")
