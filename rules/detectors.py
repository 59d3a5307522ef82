"""Stateless market-risk detectors."""

from __future__ import annotations

from core.models.rules import LeadershipRisk, RateMode
from rules.bands import step_percent

CRASH_THRESHOLD_PERCENT = -3.0
LEADERSHIP_GAP_PERCENT = 10.0
DIFFERENCE_DECIMALS = 6


def detect_crash(change_percent: float, threshold: float = CRASH_THRESHOLD_PERCENT) -> bool:
    """True when the index fell by at least the threshold (inclusive)."""
    return change_percent <= threshold


def detect_leadership_risk(
    leader_cap: float,
    runner_up_cap: float,
    gap_percent: float = LEADERSHIP_GAP_PERCENT,
    *,
    leader: str = "",
    runner_up: str = "",
) -> LeadershipRisk:
    """Flag the leader as at risk when the runner-up is within `gap_percent`."""
    if leader_cap <= 0:
        raise ValueError(f"Leader market cap must be positive, got {leader_cap!r}")

    # Rounded so an exact gap such as 7.0 vs 6.3 stays on the inclusive boundary.
    difference = round((leader_cap - runner_up_cap) / leader_cap * 100, DIFFERENCE_DECIMALS)
    return LeadershipRisk(
        is_risky=difference <= gap_percent,
        difference_percent=difference,
        leader=leader,
        runner_up=runner_up,
    )


def detect_rebound_above_two_steps(
    current_price: float,
    lowest_price_since_panic: float,
    reference_price: float,
    rate_mode: RateMode,
) -> bool:
    """V-shaped rebound: price recovered two table steps off the panic low."""
    two_steps = reference_price * (2 * step_percent(rate_mode)) / 100
    return current_price >= lowest_price_since_panic + two_steps
