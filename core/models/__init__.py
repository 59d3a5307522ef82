"""Pydantic data models shared across all components."""

from core.models.events import Event, EventTypes
from core.models.market import Fallback, IndexSnapshot, Live, Quote, SecuritySnapshot
from core.models.overview import Briefing, BriefingRequest, DataProvenance, MarketOverview
from core.models.portfolio import (
    Holding,
    HoldingValuation,
    Portfolio,
    PortfolioSummary,
    RebalanceTarget,
)
from core.models.rules import (
    DEFAULT_RATE_MODE,
    Action,
    ActionAdvice,
    Band,
    CrisisState,
    LeadershipRisk,
    MarketStatus,
    RateMode,
)

__all__ = [
    "Event",
    "EventTypes",
    "Quote",
    "SecuritySnapshot",
    "IndexSnapshot",
    "Live",
    "Fallback",
    "Briefing",
    "BriefingRequest",
    "DataProvenance",
    "MarketOverview",
    "Holding",
    "HoldingValuation",
    "Portfolio",
    "PortfolioSummary",
    "RebalanceTarget",
    "DEFAULT_RATE_MODE",
    "Action",
    "ActionAdvice",
    "Band",
    "CrisisState",
    "LeadershipRisk",
    "MarketStatus",
    "RateMode",
]
