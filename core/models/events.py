"""Event model -- the message format for the in-process bus and audit log."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field


class Event(BaseModel):
    """A typed event published on the bus and appended to the daily JSONL audit file."""

    id: str = Field(default_factory=lambda: f"evt_{uuid4().hex[:12]}")
    type: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: str = Field(default_factory=lambda: uuid4().hex[:12])
    source: str
    payload: dict = Field(default_factory=dict)

    def derive(self, type: str, source: str, payload: dict | None = None) -> Event:
        """Create a new event in the same correlation chain."""
        return Event(
            type=type,
            correlation_id=self.correlation_id,
            source=source,
            payload=payload or {},
        )


class EventTypes:
    """Well-known event type strings."""

    # Evaluation cycle
    CYCLE_COMPLETED = "cycle.completed"
    ADVICE_UPDATED = "advice.updated"

    # Panic lifecycle
    CRISIS_STARTED = "crisis.started"
    CRISIS_EXTENDED = "crisis.extended"
    CRISIS_ENDED = "crisis.ended"
    CRISIS_RESET = "crisis.reset"

    # Operator settings
    RATE_MODE_CHANGED = "rate_mode.changed"
    PORTFOLIO_UPDATED = "portfolio.updated"

    # Degradations
    DATA_FALLBACK = "data.fallback"
    BRIEFING_FALLBACK = "briefing.fallback"
