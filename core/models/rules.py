"""Rule-engine models -- band tables, panic state, and action advice."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

RateMode = Literal["zero-rate", "rising-rate"]
MarketStatus = Literal["normal", "crisis"]
Action = Literal["hold", "buy", "sell"]

DEFAULT_RATE_MODE: RateMode = "rising-rate"


class Band(BaseModel):
    """One row of a threshold table.

    `ratio` is the cash fraction to hold for the sell-down table and the
    stock fraction to hold for the buy-up tables.
    """

    drop_percent: float = Field(ge=0.0)
    ratio: int = Field(ge=0, le=100)
    target_price: float


class CrisisState(BaseModel):
    """Persisted panic-period record.

    Inactive records always carry no start, no drops and no remaining days.
    Records that break this (e.g. hand-edited or corrupted state) fail
    validation and are treated as absent by the store.
    """

    is_active: bool = False
    start_timestamp: datetime | None = None
    drop_count: int = Field(default=0, ge=0)
    wait_days: int = Field(default=0, ge=0)
    remaining_days: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_lifecycle(self) -> CrisisState:
        if not self.is_active:
            if self.start_timestamp is not None or self.drop_count or self.remaining_days:
                raise ValueError("inactive crisis state must have no start, drops or remaining days")
        elif self.start_timestamp is None:
            raise ValueError("active crisis state requires a start timestamp")
        return self


class ActionAdvice(BaseModel):
    """Recommendation for the current cycle. Never persisted."""

    status: MarketStatus
    action: Action
    percentage: int | None = Field(default=None, ge=0, le=100)
    reason: str

    @property
    def has_target(self) -> bool:
        return self.percentage is not None


class LeadershipRisk(BaseModel):
    """How close the runner-up is to overtaking the leader by market cap."""

    is_risky: bool
    difference_percent: float
    leader: str = ""
    runner_up: str = ""
