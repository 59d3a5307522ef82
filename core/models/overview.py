"""Overview models -- the assembled result of one evaluation cycle."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from core.models.market import IndexSnapshot, SecuritySnapshot
from core.models.portfolio import PortfolioSummary
from core.models.rules import (
    DEFAULT_RATE_MODE,
    ActionAdvice,
    Band,
    CrisisState,
    LeadershipRisk,
    MarketStatus,
    RateMode,
)


class BriefingRequest(BaseModel):
    """Everything the narrative generator is allowed to see."""

    index: IndexSnapshot
    top_security: SecuritySnapshot
    market_status: MarketStatus
    rate_mode: RateMode = DEFAULT_RATE_MODE
    crisis_state: CrisisState = Field(default_factory=CrisisState)


class Briefing(BaseModel):
    """Three-line natural-language summary of the advice."""

    text: str
    source: Literal["ai", "fallback"]
    provider: str | None = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DataProvenance(BaseModel):
    index_is_demo: bool = False
    securities_is_demo: bool = False


class MarketOverview(BaseModel):
    """Everything the presentation layer renders for one cycle."""

    index: IndexSnapshot
    top_securities: list[SecuritySnapshot]
    provenance: DataProvenance = Field(default_factory=DataProvenance)
    market_status: MarketStatus
    crisis_state: CrisisState
    rate_mode: RateMode
    current_band: Band | None = None
    advice: ActionAdvice
    leadership_risk: LeadershipRisk | None = None
    rebound_detected: bool | None = None
    portfolio: PortfolioSummary | None = None
    briefing: Briefing | None = None
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
