from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from core.models.rules import CrisisState
from rules.crisis import (
    advance_crisis,
    classify_transition,
    initial_crisis_state,
    market_status,
    reset_crisis,
)

T0 = datetime(2025, 3, 10, 14, 30, tzinfo=timezone.utc)


def test_first_signal_starts_panic():
    state = advance_crisis(initial_crisis_state(), True, T0)

    assert state.is_active
    assert state.start_timestamp == T0
    assert (state.drop_count, state.wait_days, state.remaining_days) == (1, 32, 32)


def test_panic_ends_once_wait_elapses():
    state = advance_crisis(initial_crisis_state(), True, T0)
    state = advance_crisis(state, False, T0 + timedelta(days=40))

    assert state == initial_crisis_state()


def test_panic_ends_exactly_at_wait_days():
    state = advance_crisis(initial_crisis_state(), True, T0)

    assert advance_crisis(state, False, T0 + timedelta(days=31)).remaining_days == 1
    assert not advance_crisis(state, False, T0 + timedelta(days=32)).is_active


def test_partial_days_are_floored():
    state = advance_crisis(initial_crisis_state(), True, T0)
    later = advance_crisis(state, False, T0 + timedelta(days=3, hours=23))
    assert later.remaining_days == 29


def test_fourth_signal_extends_wait():
    state = initial_crisis_state()
    for i in range(4):
        state = advance_crisis(state, True, T0 + timedelta(days=i))

    assert (state.drop_count, state.wait_days, state.remaining_days) == (4, 62, 62)


def test_third_signal_keeps_base_wait():
    state = initial_crisis_state()
    for i in range(3):
        state = advance_crisis(state, True, T0 + timedelta(days=i))
    assert (state.drop_count, state.wait_days) == (3, 32)


def test_new_signal_restarts_remaining_but_keeps_start():
    state = advance_crisis(initial_crisis_state(), True, T0)
    state = advance_crisis(state, False, T0 + timedelta(days=10))
    assert state.remaining_days == 22

    state = advance_crisis(state, True, T0 + timedelta(days=10))
    assert state.remaining_days == 32
    assert state.start_timestamp == T0

    # Remaining days keep counting from the first drop.
    state = advance_crisis(state, False, T0 + timedelta(days=12))
    assert state.remaining_days == 20


def test_no_signal_is_idempotent():
    state = advance_crisis(initial_crisis_state(), True, T0)
    now = T0 + timedelta(days=5)

    results = [advance_crisis(state, False, now).remaining_days for _ in range(5)]
    assert results == [27] * 5

    again = advance_crisis(advance_crisis(state, False, now), False, now)
    assert again.remaining_days == 27


def test_inactive_without_signal_stays_inactive():
    state = initial_crisis_state()
    assert advance_crisis(state, False, T0) == state


def test_configurable_waits():
    state = initial_crisis_state()
    for i in range(2):
        state = advance_crisis(
            state, True, T0, base_wait_days=10, extended_wait_days=20, extended_after_drops=2,
        )
    assert (state.drop_count, state.wait_days, state.remaining_days) == (2, 20, 20)


def test_naive_timestamps_are_treated_as_utc():
    state = advance_crisis(initial_crisis_state(), True, T0.replace(tzinfo=None))
    later = advance_crisis(state, False, T0 + timedelta(days=2))
    assert later.remaining_days == 30


def test_reset_is_unconditional():
    state = initial_crisis_state()
    for i in range(5):
        state = advance_crisis(state, True, T0 + timedelta(days=i))

    assert reset_crisis() == initial_crisis_state()
    assert not reset_crisis().is_active


def test_market_status():
    active = advance_crisis(initial_crisis_state(), True, T0)
    assert market_status(False, initial_crisis_state()) == "normal"
    assert market_status(True, initial_crisis_state()) == "crisis"
    assert market_status(False, active) == "crisis"


def test_classify_transition():
    inactive = initial_crisis_state()
    first = advance_crisis(inactive, True, T0)
    second = advance_crisis(first, True, T0 + timedelta(days=1))
    ticking = advance_crisis(second, False, T0 + timedelta(days=2))

    assert classify_transition(inactive, first) == "started"
    assert classify_transition(first, second) == "extended"
    assert classify_transition(second, ticking) is None
    assert classify_transition(ticking, inactive) == "ended"
    assert classify_transition(inactive, inactive) is None


def test_inactive_state_invariant():
    with pytest.raises(ValidationError):
        CrisisState(is_active=False, drop_count=2)
    with pytest.raises(ValidationError):
        CrisisState(is_active=False, start_timestamp=T0)
    with pytest.raises(ValidationError):
        CrisisState(is_active=True)
