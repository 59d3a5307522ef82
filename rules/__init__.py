"""Deterministic rule engine -- band tables, zone lookup, panic lifecycle, detectors, advice."""

from rules.advice import applicable_table, compose_advice, current_band
from rules.bands import (
    buy_up_rising_rate_table,
    buy_up_table,
    buy_up_zero_rate_table,
    entry_threshold,
    sell_down_table,
)
from rules.crisis import (
    advance_crisis,
    classify_transition,
    initial_crisis_state,
    market_status,
    reset_crisis,
)
from rules.detectors import detect_crash, detect_leadership_risk, detect_rebound_above_two_steps
from rules.zones import drawdown_percent, locate_band, locate_band_for_drawdown

__all__ = [
    "applicable_table",
    "compose_advice",
    "current_band",
    "buy_up_rising_rate_table",
    "buy_up_table",
    "buy_up_zero_rate_table",
    "entry_threshold",
    "sell_down_table",
    "advance_crisis",
    "classify_transition",
    "initial_crisis_state",
    "market_status",
    "reset_crisis",
    "detect_crash",
    "detect_leadership_risk",
    "detect_rebound_above_two_steps",
    "drawdown_percent",
    "locate_band",
    "locate_band_for_drawdown",
]
