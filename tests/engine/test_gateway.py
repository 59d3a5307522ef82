from datetime import date

import pytest

from core.config import MarketDataConfig
from core.models.events import EventTypes
from core.protocols import MarketDataError
from engine.gateway import DEMO_SECURITIES, MarketGateway
from tests.fakes import FakeMarketData, quote

UNIVERSE = ["AAPL", "NVDA", "MSFT", "GOOGL", "AMZN", "META"]


def make_gateway(market, state, bus=None, **market_kwargs):
    return MarketGateway(
        provider=market,
        state=state,
        market_config=MarketDataConfig(universe=UNIVERSE, **market_kwargs),
        bus=bus,
    )


async def test_security_snapshot_from_quote(market, state):
    market.set("AAPL", 253.60, 256.0, period_high=260.10)

    result = await make_gateway(market, state).get_security("aapl")

    assert not result.is_demo
    snap = result.data
    assert snap.symbol == "AAPL"
    assert snap.all_time_high == 260.10
    assert snap.drawdown_percent == 2.50
    assert snap.change_percent == pytest.approx((253.60 - 256.0) / 256.0 * 100)


async def test_all_time_high_never_decreases(market, state):
    gateway = make_gateway(market, state)
    market.set("AAPL", 250.0, period_high=300.0)
    await gateway.get_security("AAPL")

    # Lookback window moved past the old peak.
    market.set("AAPL", 255.0, period_high=270.0)
    snap = (await gateway.get_security("AAPL")).data

    assert snap.all_time_high == 300.0
    assert state.load_all_time_highs()["AAPL"] == 300.0


async def test_price_above_history_becomes_new_high(market, state):
    market.set("AAPL", 310.0, period_high=300.0)
    snap = (await make_gateway(market, state).get_security("AAPL")).data

    assert snap.all_time_high == 310.0
    assert snap.drawdown_percent == 0.0


async def test_security_falls_back_to_demo(state, bus, recorder):
    result = await make_gateway(FakeMarketData(), state, bus).get_security("NVDA")

    assert result.is_demo
    assert result.data == DEMO_SECURITIES["NVDA"]
    assert result.reason
    assert recorder.types() == [EventTypes.DATA_FALLBACK]


async def test_unknown_symbol_without_demo_raises(state):
    with pytest.raises(MarketDataError):
        await make_gateway(FakeMarketData(), state).get_security("ZZZZ")


async def test_non_positive_price_is_rejected(market, state):
    market.set("AAPL", 0.0, 250.0)
    result = await make_gateway(market, state).get_security("AAPL")
    assert result.is_demo


async def test_no_provider_uses_demo(state):
    gateway = MarketGateway(provider=None, state=state)
    assert (await gateway.get_index()).is_demo
    assert (await gateway.get_top_securities()).is_demo


async def test_index_crash_flag(market, state):
    market.set("^IXIC", 19000.0, 19600.0, session_date=date(2025, 3, 10))
    result = await make_gateway(market, state).get_index()

    index = result.data
    assert not result.is_demo
    assert index.change_percent == pytest.approx(-3.0612, abs=1e-3)
    assert index.crash_flag
    assert index.session_date == date(2025, 3, 10)
    assert index.name == "NASDAQ Composite"


async def test_index_without_crash(market, state):
    market.set("^IXIC", 19500.0, 19600.0)
    assert not (await make_gateway(market, state).get_index()).data.crash_flag


async def test_index_fallback(state):
    result = await make_gateway(FakeMarketData(), state).get_index()

    assert result.is_demo
    assert result.data.price == 19432.12
    assert result.data.change_percent == -1.25
    assert not result.data.crash_flag


async def test_top_securities_sorted_by_market_cap(market, state):
    caps = {"AAPL": 3.0e12, "NVDA": 3.5e12, "MSFT": 3.2e12, "GOOGL": 2.0e12, "AMZN": 2.1e12, "META": 1.5e12}
    for symbol, cap in caps.items():
        market.set(symbol, 100.0, market_cap=cap)

    result = await make_gateway(market, state).get_top_securities()

    assert not result.is_demo
    assert [s.symbol for s in result.data] == ["NVDA", "MSFT", "AAPL", "AMZN"]
    assert sorted(market.calls) == sorted(UNIVERSE)


async def test_top_securities_without_caps_keep_universe_order(market, state, caplog):
    for symbol in UNIVERSE:
        market.set(symbol, 100.0, market_cap=0.0)

    with caplog.at_level("WARNING", logger="engine.gateway"):
        result = await make_gateway(market, state).get_top_securities()

    assert not result.is_demo
    assert [s.symbol for s in result.data] == UNIVERSE[:4]
    assert "No market caps" in caplog.text


async def test_top_securities_drop_failures(market, state):
    for symbol in ["AAPL", "NVDA", "MSFT", "GOOGL"]:
        market.set(symbol, 100.0)
    result = await make_gateway(market, state).get_top_securities(limit=4)

    assert not result.is_demo
    assert len(result.data) == 4


async def test_top_securities_fall_back_when_too_few(market, state, bus, recorder):
    for symbol in ["AAPL", "NVDA", "MSFT"]:
        market.set(symbol, 100.0)
    result = await make_gateway(market, state, bus).get_top_securities(limit=4)

    assert result.is_demo
    assert [s.symbol for s in result.data] == ["AAPL", "NVDA", "MSFT", "GOOGL"]
    assert EventTypes.DATA_FALLBACK in recorder.types()


def test_demo_snapshots_match_published_drawdowns():
    assert DEMO_SECURITIES["AAPL"].drawdown_percent == 4.45
    assert DEMO_SECURITIES["NVDA"].drawdown_percent == 12.19
    assert DEMO_SECURITIES["MSFT"].drawdown_percent == 8.51
    assert DEMO_SECURITIES["GOOGL"].drawdown_percent == 4.45


async def test_invalid_limit(market, state):
    with pytest.raises(ValueError):
        await make_gateway(market, state).get_top_securities(limit=-1)
