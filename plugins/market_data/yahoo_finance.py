"""Yahoo Finance quote provider -- fetches via httpx (no yfinance dependency).

Uses the public chart API: one request returns the current price, the
previous close, and a year of daily bars: the highs give the period high, and the
last two closes give the previous close when the meta block omits it.
Example symbols: AAPL, NVDA, ^IXIC (NASDAQ Composite), ^GSPC
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import httpx

from core.models.market import Quote
from core.protocols import MarketDataError

logger = logging.getLogger(__name__)

PLUGIN_META = {
    "name": "yahoo_finance",
    "display_name": "Yahoo Finance",
    "description": "Quotes and 52-week highs for stocks and indices -- free, no API key required",
    "category": "market_data",
    "protocols": ["market_data"],
    "class_name": "YahooFinanceProvider",
    "pip_dependencies": [],
    "setup_instructions": """
Yahoo Finance requires no API key -- it's free and public.
The index and the security universe are configured under market_data.
""",
    "config_fields": [
        {
            "key": "history_range",
            "label": "Lookback range",
            "type": "choice",
            "required": False,
            "default": "1y",
            "choices": ["6mo", "1y", "2y", "5y", "max"],
            "description": "Window used to find each symbol's high",
        },
    ],
}

# Yahoo Finance chart API endpoint
_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class YahooFinanceProvider:
    """Fetches quotes from Yahoo Finance via the public chart API.

    Implements the MarketDataProvider protocol.
    """

    def __init__(
        self,
        history_range: str = "1y",
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._history_range = history_range
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": _USER_AGENT},
        )

    @property
    def name(self) -> str:
        return "yahoo_finance"

    async def fetch_quote(self, symbol: str) -> Quote:
        """Fetch the current quote and lookback high for `symbol`."""
        symbol = symbol.upper()
        params = {"interval": "1d", "range": self._history_range}

        try:
            response = await self._client.get(_CHART_URL.format(symbol=symbol), params=params)
        except httpx.HTTPError as exc:
            raise MarketDataError(symbol, f"request failed: {exc}") from exc

        if response.status_code != 200:
            raise MarketDataError(symbol, f"Yahoo Finance returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise MarketDataError(symbol, "response is not JSON") from exc

        chart = data.get("chart") or {}
        result = chart.get("result")
        if not result:
            raise MarketDataError(symbol, f"no chart result ({chart.get('error')})")

        return self._parse_chart_result(symbol, result[0])

    def _parse_chart_result(self, symbol: str, result: dict) -> Quote:
        """Parse one chart API result into a Quote."""
        meta = result.get("meta") or {}
        price = meta.get("regularMarketPrice")
        quote = ((result.get("indicators") or {}).get("quote") or [{}])[0]
        highs = [h for h in quote.get("high") or [] if h is not None]
        closes = [c for c in quote.get("close") or [] if c is not None]

        # chartPreviousClose is the close before the whole chart range, so the
        # daily closes take precedence over it.
        previous_close = meta.get("previousClose")
        if not previous_close and len(closes) >= 2:
            previous_close = closes[-2]
        if not previous_close:
            previous_close = meta.get("chartPreviousClose")

        if not price or not previous_close:
            raise MarketDataError(symbol, "missing price or previous close")

        session_date = None
        market_time = meta.get("regularMarketTime")
        if market_time:
            offset = timedelta(seconds=meta.get("gmtoffset") or 0)
            session_date = (datetime.fromtimestamp(market_time, tz=timezone.utc) + offset).date()

        return Quote(
            symbol=symbol,
            name=meta.get("shortName") or meta.get("longName") or symbol,
            price=float(price),
            previous_close=float(previous_close),
            market_cap=float(meta.get("marketCap") or 0),
            period_high=max(highs) if highs else None,
            session_date=session_date,
            source=self.name,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
