from datetime import datetime, timezone

import pytest

from core.models.market import SecuritySnapshot
from rules.advice import applicable_table, compose_advice, current_band
from rules.crisis import advance_crisis, initial_crisis_state
from rules.zones import drawdown_percent

ACTIVE = advance_crisis(initial_crisis_state(), True, datetime(2025, 3, 10, tzinfo=timezone.utc))


def snapshot(price: float, ath: float = 260.10) -> SecuritySnapshot:
    return SecuritySnapshot(
        symbol="AAPL",
        name="Apple Inc.",
        current_price=price,
        previous_close=price,
        change_percent=0.0,
        market_cap=3.75e12,
        all_time_high=ath,
        drawdown_percent=drawdown_percent(ath, price) if ath > 0 else 0.0,
    )


def test_normal_below_first_band_holds():
    advice = compose_advice(snapshot(253.71), "normal", initial_crisis_state(), "rising-rate")

    assert advice.action == "hold"
    assert advice.percentage is None
    assert not advice.has_target
    assert "2.5%" in advice.reason


def test_normal_at_first_band_sells_ten_percent():
    advice = compose_advice(snapshot(253.60), "normal", initial_crisis_state(), "rising-rate")

    assert advice.action == "sell"
    assert advice.percentage == 10
    assert "2.5%" in advice.reason
    assert "10%" in advice.reason


def test_normal_deep_drawdown_caps_at_full_cash():
    advice = compose_advice(snapshot(150.0), "normal", initial_crisis_state(), "zero-rate")
    assert (advice.action, advice.percentage) == ("sell", 100)


def test_crisis_rising_rate_first_band_buys_zero():
    advice = compose_advice(snapshot(247.10), "crisis", ACTIVE, "rising-rate")

    assert advice.action == "buy"
    assert advice.percentage == 0
    assert advice.has_target


def test_crisis_rising_rate_below_threshold_waits():
    advice = compose_advice(snapshot(250.00), "crisis", ACTIVE, "rising-rate")

    assert advice.action == "hold"
    assert advice.percentage is None
    assert "5.0%" in advice.reason
    assert advice.reason.endswith("Wait.")


def test_crisis_zero_rate_uses_fine_steps():
    advice = compose_advice(snapshot(247.10), "crisis", ACTIVE, "zero-rate")
    assert (advice.action, advice.percentage) == ("buy", 20)


def test_crisis_status_without_active_state_still_uses_buy_up():
    advice = compose_advice(snapshot(234.09), "crisis", initial_crisis_state(), "rising-rate")
    assert (advice.action, advice.percentage) == ("buy", 10)


@pytest.mark.parametrize("status", ["normal", "crisis"])
def test_missing_all_time_high_holds(status):
    advice = compose_advice(snapshot(100.0, ath=0.0), status, initial_crisis_state(), "zero-rate")
    assert advice.action == "hold"
    assert advice.status == status


def test_price_above_ath_holds():
    advice = compose_advice(snapshot(270.0), "normal", initial_crisis_state(), "rising-rate")
    assert advice.action == "hold"


def test_current_band_matches_advice():
    snap = snapshot(253.60)
    band = current_band(snap, "normal", "rising-rate")
    assert band is not None
    assert band.ratio == 10
    assert current_band(snapshot(253.71), "normal", "rising-rate") is None
    assert current_band(snapshot(100.0, ath=0.0), "normal", "rising-rate") is None


def test_applicable_table():
    assert len(applicable_table(100.0, "normal", "rising-rate")) == 10
    assert len(applicable_table(100.0, "crisis", "rising-rate")) == 11
    assert len(applicable_table(100.0, "crisis", "zero-rate")) == 10
