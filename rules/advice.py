"""Advice composer -- turns a snapshot and market state into a hold/buy/sell instruction.

Normal market: sell-down table, entry at 2.5%.
Crisis: buy-up table for the rate mode, entry at 2.5% (zero-rate) or 5% (rising-rate).
"""

from __future__ import annotations

from core.models.market import SecuritySnapshot
from core.models.rules import ActionAdvice, Band, CrisisState, MarketStatus, RateMode
from rules.bands import buy_up_table, entry_threshold, sell_down_table
from rules.zones import locate_band


def applicable_table(
    reference_price: float,
    status: MarketStatus,
    rate_mode: RateMode,
) -> list[Band]:
    if status == "normal":
        return sell_down_table(reference_price)
    return buy_up_table(reference_price, rate_mode)


def current_band(
    snapshot: SecuritySnapshot,
    status: MarketStatus,
    rate_mode: RateMode,
) -> Band | None:
    """The band the snapshot sits in for the applicable table, if any."""
    if snapshot.all_time_high <= 0:
        return None
    table = applicable_table(snapshot.all_time_high, status, rate_mode)
    return locate_band(snapshot.current_price, snapshot.all_time_high, table, entry_threshold(table))


def compose_advice(
    snapshot: SecuritySnapshot,
    status: MarketStatus,
    crisis: CrisisState,
    rate_mode: RateMode,
) -> ActionAdvice:
    """Build the recommendation for one cycle. Pure given its inputs.

    `crisis` is accepted for parity with the manual's inputs; the band
    choice depends only on the market status and rate mode.
    """
    if snapshot.all_time_high <= 0:
        return ActionAdvice(
            status=status,
            action="hold",
            reason="No valid all-time-high for the reference security. Hold current positions.",
        )

    table = applicable_table(snapshot.all_time_high, status, rate_mode)
    threshold = entry_threshold(table)
    band = locate_band(snapshot.current_price, snapshot.all_time_high, table, threshold)

    if status == "normal":
        if band is None:
            return ActionAdvice(
                status=status,
                action="hold",
                reason=(
                    f"Drawdown from the all-time-high is below the first band ({threshold:.1f}%). "
                    "Hold current positions."
                ),
            )
        return ActionAdvice(
            status=status,
            action="sell",
            percentage=band.ratio,
            reason=(
                f"Price is in the {band.drop_percent:.1f}% drawdown band. "
                f"Rebalance so cash is {band.ratio}% of the portfolio."
            ),
        )

    if band is None:
        return ActionAdvice(
            status=status,
            action="hold",
            reason=(
                f"Panic period, but the {threshold:.1f}% buy-up threshold has not been reached. Wait."
            ),
        )
    return ActionAdvice(
        status=status,
        action="buy",
        percentage=band.ratio,
        reason=(
            f"Panic period in the {band.drop_percent:.1f}% drawdown band. "
            f"Buy up so stocks are {band.ratio}% of the portfolio."
        ),
    )
