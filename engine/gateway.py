"""Market gateway -- turns provider quotes into snapshots, substituting demo data on failure.

Every result is tagged Live or Fallback. Callers may show the tag, but the
advice pipeline treats both the same way.
"""

from __future__ import annotations

import asyncio
import logging

from core.config import MarketDataConfig, RulesConfig
from core.models.events import Event, EventTypes
from core.models.market import Fallback, IndexSnapshot, Live, Quote, SecuritySnapshot
from core.protocols import EventBus, MarketDataError, MarketDataProvider
from engine.state import StateRepository
from rules.detectors import detect_crash
from rules.zones import drawdown_percent

logger = logging.getLogger(__name__)

SecurityResult = Live[SecuritySnapshot] | Fallback[SecuritySnapshot]
IndexResult = Live[IndexSnapshot] | Fallback[IndexSnapshot]
TopSecuritiesResult = Live[list[SecuritySnapshot]] | Fallback[list[SecuritySnapshot]]


# ---------------------------------------------------------------------------
# Demo data -- shown whenever upstream quotes are unavailable
# ---------------------------------------------------------------------------

DEMO_INDEX_PRICE = 19432.12
DEMO_INDEX_PREVIOUS_CLOSE = 19678.45
DEMO_INDEX_CHANGE_PERCENT = -1.25


def _demo_security(
    symbol: str,
    name: str,
    price: float,
    previous_close: float,
    change_percent: float,
    market_cap: float,
    all_time_high: float,
) -> SecuritySnapshot:
    return SecuritySnapshot(
        symbol=symbol,
        name=name,
        current_price=price,
        previous_close=previous_close,
        change_percent=change_percent,
        market_cap=market_cap,
        all_time_high=all_time_high,
        drawdown_percent=drawdown_percent(all_time_high, price),
    )


DEMO_SECURITIES: dict[str, SecuritySnapshot] = {
    s.symbol: s
    for s in (
        _demo_security("AAPL", "Apple Inc.", 248.52, 250.12, -0.64, 3.75e12, 260.10),
        _demo_security("NVDA", "NVIDIA Corporation", 134.25, 136.52, -1.66, 3.30e12, 152.89),
        _demo_security("MSFT", "Microsoft Corporation", 428.50, 430.10, -0.37, 3.18e12, 468.35),
        _demo_security("GOOGL", "Alphabet Inc.", 192.45, 193.20, -0.39, 2.37e12, 201.42),
    )
}


def demo_top_securities(limit: int) -> list[SecuritySnapshot]:
    """Demo list, already ordered by market cap."""
    ranked = sorted(DEMO_SECURITIES.values(), key=lambda s: s.market_cap, reverse=True)
    return ranked[:limit]


def change_percent(price: float, previous_close: float) -> float:
    return (price - previous_close) / previous_close * 100


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class MarketGateway:
    """Fetches the index and securities through the configured provider.

    Usage:
        gateway = MarketGateway(provider, state, config.market_data, config.rules, bus)
        result = await gateway.get_index()
        if result.is_demo: ...
    """

    def __init__(
        self,
        provider: MarketDataProvider | None,
        state: StateRepository,
        market_config: MarketDataConfig | None = None,
        rules_config: RulesConfig | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._provider = provider
        self._state = state
        self._market = market_config or MarketDataConfig()
        self._rules = rules_config or RulesConfig()
        self._bus = bus

    @property
    def index_symbol(self) -> str:
        return self._market.index_symbol

    async def get_security(self, symbol: str) -> SecurityResult:
        """Snapshot for one symbol; demo snapshot when the provider fails.

        Raises MarketDataError when the symbol has neither live nor demo data.
        """
        symbol = symbol.strip().upper()
        try:
            return Live[SecuritySnapshot](data=await self._fetch_security(symbol))
        except MarketDataError as exc:
            demo = DEMO_SECURITIES.get(symbol)
            if demo is None:
                logger.warning("No data for %s and no demo snapshot: %s", symbol, exc)
                raise
            await self._report_fallback("security", symbol, str(exc))
            return Fallback[SecuritySnapshot](data=demo, reason=str(exc))

    async def get_index(self) -> IndexResult:
        """Snapshot of the reference index with its crash flag."""
        symbol = self._market.index_symbol
        try:
            quote = await self._fetch_quote(symbol)
        except MarketDataError as exc:
            await self._report_fallback("index", symbol, str(exc))
            return Fallback[IndexSnapshot](data=self._demo_index(), reason=str(exc))

        change = change_percent(quote.price, quote.previous_close)
        return Live[IndexSnapshot](data=IndexSnapshot(
            symbol=symbol,
            name=self._market.index_name,
            price=quote.price,
            previous_close=quote.previous_close,
            change_percent=change,
            crash_flag=detect_crash(change, self._rules.crash_threshold_percent),
            session_date=quote.session_date,
        ))

    async def get_top_securities(self, limit: int | None = None) -> TopSecuritiesResult:
        """The `limit` largest securities of the universe by market cap.

        The whole universe is fetched concurrently; failed symbols are dropped.
        When fewer than `limit` remain the demo list is returned instead.
        """
        limit = limit or self._market.top_n
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")

        results = await asyncio.gather(
            *(self._try_fetch_security(symbol) for symbol in self._market.universe)
        )
        valid = [snapshot for snapshot in results if snapshot is not None]
        if valid and all(s.market_cap <= 0 for s in valid):
            logger.warning(
                "No market caps in %d live quotes; ranking follows universe order and "
                "leadership risk is skipped",
                len(valid),
            )
        valid.sort(key=lambda s: s.market_cap, reverse=True)

        if len(valid) >= limit:
            return Live[list[SecuritySnapshot]](data=valid[:limit])

        reason = f"only {len(valid)} of {limit} securities available"
        await self._report_fallback("top_securities", ",".join(self._market.universe), reason)
        return Fallback[list[SecuritySnapshot]](data=demo_top_securities(limit), reason=reason)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fetch_quote(self, symbol: str) -> Quote:
        if self._provider is None:
            raise MarketDataError(symbol, "no market data provider configured")
        quote = await self._provider.fetch_quote(symbol)
        if quote.price <= 0 or quote.previous_close <= 0:
            raise MarketDataError(symbol, f"non-positive price in quote ({quote.price}, {quote.previous_close})")
        return quote

    async def _fetch_security(self, symbol: str) -> SecuritySnapshot:
        quote = await self._fetch_quote(symbol)

        observed = max(quote.period_high or 0.0, quote.price)
        all_time_high = self._state.record_all_time_high(symbol, observed)

        return SecuritySnapshot(
            symbol=symbol,
            name=quote.name or symbol,
            current_price=quote.price,
            previous_close=quote.previous_close,
            change_percent=change_percent(quote.price, quote.previous_close),
            market_cap=quote.market_cap,
            all_time_high=all_time_high,
            drawdown_percent=drawdown_percent(all_time_high, quote.price),
        )

    async def _try_fetch_security(self, symbol: str) -> SecuritySnapshot | None:
        try:
            return await self._fetch_security(symbol)
        except MarketDataError as exc:
            logger.warning("Skipping %s: %s", symbol, exc)
            return None

    def _demo_index(self) -> IndexSnapshot:
        return IndexSnapshot(
            symbol=self._market.index_symbol,
            name=self._market.index_name,
            price=DEMO_INDEX_PRICE,
            previous_close=DEMO_INDEX_PREVIOUS_CLOSE,
            change_percent=DEMO_INDEX_CHANGE_PERCENT,
            crash_flag=detect_crash(DEMO_INDEX_CHANGE_PERCENT, self._rules.crash_threshold_percent),
        )

    async def _report_fallback(self, kind: str, symbol: str, reason: str) -> None:
        logger.warning("Using demo %s data for %s: %s", kind, symbol, reason)
        if self._bus is None:
            return
        await self._bus.publish(Event(
            type=EventTypes.DATA_FALLBACK,
            source="gateway",
            payload={"kind": kind, "symbol": symbol, "reason": reason},
        ))
