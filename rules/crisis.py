"""Panic lifecycle tracker -- a pure transition function over CrisisState.

States are Inactive and Active(drop_count, start, wait_days, remaining_days).

* a crash signal enters or extends Active: the drop count goes up, the
  wait restarts at full length, and from the 4th drop on the wait is 62
  days instead of 32
* without a signal an Active state counts whole days since the *first*
  drop; once the wait is used up the state resets to Inactive
* an operator may reset to Inactive at any time

The drop count is never decayed by calendar month; it only clears on a
full reset. The caller owns loading and saving the state around each call.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from core.duration import whole_days_between
from core.models.rules import CrisisState, MarketStatus

BASE_WAIT_DAYS = 32
EXTENDED_WAIT_DAYS = 62
EXTENDED_AFTER_DROPS = 4

Transition = Literal["started", "extended", "ended"]


def initial_crisis_state() -> CrisisState:
    return CrisisState()


def reset_crisis() -> CrisisState:
    """Operator override: force Inactive unconditionally."""
    return initial_crisis_state()


def advance_crisis(
    state: CrisisState,
    crash_signal: bool,
    now: datetime,
    *,
    base_wait_days: int = BASE_WAIT_DAYS,
    extended_wait_days: int = EXTENDED_WAIT_DAYS,
    extended_after_drops: int = EXTENDED_AFTER_DROPS,
) -> CrisisState:
    """Apply one evaluation cycle to `state` and return the new state."""
    if crash_signal:
        drop_count = state.drop_count + 1 if state.is_active else 1
        wait_days = extended_wait_days if drop_count >= extended_after_drops else base_wait_days
        start = state.start_timestamp if state.is_active else now
        return CrisisState(
            is_active=True,
            start_timestamp=start,
            drop_count=drop_count,
            wait_days=wait_days,
            remaining_days=wait_days,
        )

    if not state.is_active:
        return state

    days_passed = whole_days_between(state.start_timestamp, now)
    remaining = max(0, state.wait_days - days_passed)
    if remaining == 0:
        return initial_crisis_state()

    return state.model_copy(update={"remaining_days": remaining})


def market_status(crash_signal: bool, state: CrisisState) -> MarketStatus:
    """Crisis while today's index is crashing or a panic period is running."""
    return "crisis" if crash_signal or state.is_active else "normal"


def classify_transition(before: CrisisState, after: CrisisState) -> Transition | None:
    """Name the lifecycle change between two consecutive states, if any."""
    if not before.is_active and after.is_active:
        return "started"
    if before.is_active and not after.is_active:
        return "ended"
    if after.is_active and after.drop_count > before.drop_count:
        return "extended"
    return None
