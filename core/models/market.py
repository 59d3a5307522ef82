"""Market data models -- raw quotes, snapshots, and their provenance tags."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Quote(BaseModel):
    """Raw quote as returned by a market data provider.

    `period_high` is the highest daily high over the provider's lookback
    window; the gateway folds it into the running all-time-high.
    """

    symbol: str
    name: str = ""
    price: float
    previous_close: float
    market_cap: float = 0.0
    period_high: float | None = None
    session_date: date | None = None
    source: str = ""


class SecuritySnapshot(BaseModel):
    """Point-in-time view of one security relative to its all-time-high."""

    symbol: str
    name: str
    current_price: float
    previous_close: float
    change_percent: float
    market_cap: float = 0.0
    all_time_high: float
    drawdown_percent: float


class IndexSnapshot(BaseModel):
    """Point-in-time view of the reference market index."""

    symbol: str
    name: str
    price: float
    previous_close: float
    change_percent: float
    crash_flag: bool = False
    session_date: date | None = None
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Live(BaseModel, Generic[T]):
    """Data fetched from the upstream provider."""

    kind: Literal["live"] = "live"
    data: T

    @property
    def is_demo(self) -> bool:
        return False


class Fallback(BaseModel, Generic[T]):
    """Fixed demo data substituted because upstream data was unavailable."""

    kind: Literal["fallback"] = "fallback"
    data: T
    reason: str = ""

    @property
    def is_demo(self) -> bool:
        return True
