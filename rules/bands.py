"""Band tables -- the manual's fixed percentage ladders, derived from one reference price.

Three ladders exist:

* sell-down (normal market): every 2.5% below the high, raise cash by 10 points
* buy-up, zero-rate (panic): every 2.5% below the high, raise stock by 10 points
* buy-up, rising-rate (panic): a 0% rung at -5%, then +10 points every 5% to -55%

Tables are regenerated on every call; nothing is cached.
"""

from __future__ import annotations

from core.models.rules import Band, RateMode

FINE_STEP_PERCENT = 2.5
COARSE_STEP_PERCENT = 5.0
RATIO_STEP = 10
BAND_COUNT = 10


def _require_positive(reference_price: float) -> None:
    if reference_price <= 0:
        raise ValueError(f"Reference price must be positive, got {reference_price!r}")


def _band(reference_price: float, drop_percent: float, ratio: int) -> Band:
    return Band(
        drop_percent=drop_percent,
        ratio=ratio,
        target_price=reference_price * (1 - drop_percent / 100),
    )


def _fine_ladder(reference_price: float) -> list[Band]:
    _require_positive(reference_price)
    return [
        _band(reference_price, i * FINE_STEP_PERCENT, i * RATIO_STEP)
        for i in range(1, BAND_COUNT + 1)
    ]


def sell_down_table(reference_price: float) -> list[Band]:
    """Normal-market table; `ratio` is the cash percentage to hold."""
    return _fine_ladder(reference_price)


def buy_up_zero_rate_table(reference_price: float) -> list[Band]:
    """Panic table for zero-rate mode; `ratio` is the stock percentage to hold."""
    return _fine_ladder(reference_price)


def buy_up_rising_rate_table(reference_price: float) -> list[Band]:
    """Panic table for rising-rate mode.

    The first rung at -5% holds 0% stock, which is a real band and is
    distinct from "no band reached".
    """
    _require_positive(reference_price)
    bands = [_band(reference_price, COARSE_STEP_PERCENT, 0)]
    for i in range(1, BAND_COUNT + 1):
        bands.append(_band(reference_price, COARSE_STEP_PERCENT + i * COARSE_STEP_PERCENT, i * RATIO_STEP))
    return bands


def buy_up_table(reference_price: float, rate_mode: RateMode) -> list[Band]:
    if rate_mode == "zero-rate":
        return buy_up_zero_rate_table(reference_price)
    return buy_up_rising_rate_table(reference_price)


def step_percent(rate_mode: RateMode) -> float:
    """Width of one buy-up band for the given rate mode."""
    return FINE_STEP_PERCENT if rate_mode == "zero-rate" else COARSE_STEP_PERCENT


def entry_threshold(table: list[Band]) -> float:
    """Smallest drop that enters the table."""
    return table[0].drop_percent if table else 0.0
