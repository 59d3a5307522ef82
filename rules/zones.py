"""Zone locator -- maps a drawdown to the deepest band it has fully reached."""

from __future__ import annotations

from core.models.rules import Band

DRAWDOWN_DECIMALS = 2


def drawdown_percent(reference_price: float, current_price: float) -> float:
    """Percentage decline of `current_price` from `reference_price`.

    Rounded to two decimals; band boundaries are compared against this value.
    Negative when the price is above the reference.
    """
    if reference_price <= 0:
        raise ValueError(f"Reference price must be positive, got {reference_price!r}")
    return round((reference_price - current_price) / reference_price * 100, DRAWDOWN_DECIMALS)


def locate_band_for_drawdown(
    drawdown: float,
    table: list[Band],
    entry_threshold: float,
) -> Band | None:
    """Return the band with the largest drop_percent not exceeding `drawdown`.

    Below `entry_threshold` (including negative drawdowns) there is no band.
    Once the threshold is passed a band is always returned: anything shallower
    than the first rung still lands on the first rung.
    """
    if not table or drawdown < 0 or drawdown < entry_threshold:
        return None

    for band in reversed(table):
        if band.drop_percent <= drawdown:
            return band
    return table[0]


def locate_band(
    current_price: float,
    reference_price: float,
    table: list[Band],
    entry_threshold: float,
) -> Band | None:
    """Locate the band for a price relative to its all-time-high."""
    if reference_price <= 0:
        return None
    return locate_band_for_drawdown(
        drawdown_percent(reference_price, current_price),
        table,
        entry_threshold,
    )
