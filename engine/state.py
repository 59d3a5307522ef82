"""Typed access to the persisted records.

The host application loads and saves through this class around each
evaluation cycle; the rule engine itself never touches storage.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import get_args

from core.data.store import Store
from core.models.portfolio import Portfolio
from core.models.rules import DEFAULT_RATE_MODE, CrisisState, RateMode
from rules.crisis import initial_crisis_state

logger = logging.getLogger(__name__)

CRISIS_STATE_KEY = "crisis_state"
RATE_MODE_KEY = "rate_mode"
PORTFOLIO_KEY = "portfolio"
ALL_TIME_HIGHS_KEY = "all_time_highs"
PANIC_LOWS_KEY = "panic_lows"
COUNTED_CRASH_SESSION_KEY = "counted_crash_session"

RATE_MODES: tuple[str, ...] = get_args(RateMode)


def _price_map(raw: object, key: str) -> dict[str, float]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        logger.warning("Discarding non-mapping value stored under '%s'", key)
        return {}
    prices: dict[str, float] = {}
    for symbol, value in raw.items():
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            prices[str(symbol)] = float(value)
    return prices


class StateRepository:
    """Reads and writes CrisisState, RateMode, Portfolio and price maps."""

    def __init__(self, store: Store) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Crisis state
    # ------------------------------------------------------------------

    def load_crisis_state(self) -> CrisisState:
        return self._store.get_model(CRISIS_STATE_KEY, CrisisState) or initial_crisis_state()

    def save_crisis_state(self, state: CrisisState) -> None:
        self._store.put_model(CRISIS_STATE_KEY, state)

    def load_counted_crash_session(self) -> date | None:
        raw = self._store.get_raw(COUNTED_CRASH_SESSION_KEY)
        if not isinstance(raw, str):
            return None
        try:
            return date.fromisoformat(raw)
        except ValueError:
            logger.warning("Discarding malformed crash session '%s'", raw)
            return None

    def save_counted_crash_session(self, session: date) -> None:
        self._store.put_raw(COUNTED_CRASH_SESSION_KEY, session.isoformat())

    # ------------------------------------------------------------------
    # Rate mode
    # ------------------------------------------------------------------

    def load_rate_mode(self) -> RateMode:
        raw = self._store.get_raw(RATE_MODE_KEY)
        if raw in RATE_MODES:
            return raw  # type: ignore[return-value]
        if raw is not None:
            logger.warning("Discarding unknown rate mode %r", raw)
        return DEFAULT_RATE_MODE

    def save_rate_mode(self, mode: RateMode) -> None:
        if mode not in RATE_MODES:
            raise ValueError(f"Unknown rate mode {mode!r}. Expected one of {RATE_MODES}")
        self._store.put_raw(RATE_MODE_KEY, mode)

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    def load_portfolio(self) -> Portfolio:
        return self._store.get_model(PORTFOLIO_KEY, Portfolio) or Portfolio()

    def save_portfolio(self, portfolio: Portfolio) -> None:
        self._store.put_model(PORTFOLIO_KEY, portfolio)

    # ------------------------------------------------------------------
    # Observed all-time-highs
    # ------------------------------------------------------------------

    def load_all_time_highs(self) -> dict[str, float]:
        return _price_map(self._store.get_raw(ALL_TIME_HIGHS_KEY), ALL_TIME_HIGHS_KEY)

    def record_all_time_high(self, symbol: str, observed_high: float) -> float:
        """Keep the running max for `symbol` and return it."""
        highs = self.load_all_time_highs()
        current = highs.get(symbol, 0.0)
        if observed_high > current:
            highs[symbol] = observed_high
            self._store.put_raw(ALL_TIME_HIGHS_KEY, highs)
            return observed_high
        return current

    # ------------------------------------------------------------------
    # Lowest prices since the panic started
    # ------------------------------------------------------------------

    def load_panic_lows(self) -> dict[str, float]:
        return _price_map(self._store.get_raw(PANIC_LOWS_KEY), PANIC_LOWS_KEY)

    def record_panic_low(self, symbol: str, price: float) -> float:
        """Keep the running min for `symbol` and return it."""
        lows = self.load_panic_lows()
        current = lows.get(symbol)
        if current is None or price < current:
            lows[symbol] = price
            self._store.put_raw(PANIC_LOWS_KEY, lows)
            return price
        return current

    def clear_panic_lows(self) -> None:
        self._store.delete(PANIC_LOWS_KEY)

    # ------------------------------------------------------------------

    def clear_all(self) -> None:
        """Reset every record to its default."""
        self._store.clear_all()
