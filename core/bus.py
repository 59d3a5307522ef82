"""AsyncIOBus -- in-process async pub/sub with an optional JSONL audit trail.

Crisis transitions, operator changes and data degradations are published
here. Subscribers (e.g. the SSE stream) never affect the publisher: handler
errors are logged and swallowed per handler.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Coroutine

from core.models.events import Event

logger = logging.getLogger(__name__)

Callback = Callable[[Event], Coroutine[Any, Any, None]]


class AsyncIOBus:
    """Implements the EventBus protocol.

    Usage:
        bus = AsyncIOBus(events_dir=home / "events")
        bus.subscribe("crisis.started", on_crisis)
        await bus.publish(event)
    """

    def __init__(self, events_dir: Path | None = None) -> None:
        self._subscribers: dict[str, list[Callback]] = {}
        self._events_dir = events_dir
        if self._events_dir is not None:
            self._events_dir.mkdir(parents=True, exist_ok=True)

    @property
    def name(self) -> str:
        return "asyncio_bus"

    async def publish(self, event: Event) -> None:
        """Persist to the audit log, then dispatch to type and wildcard subscribers."""
        self._persist(event)

        callbacks = self._subscribers.get(event.type, []) + self._subscribers.get("*", [])
        if not callbacks:
            logger.debug("No subscribers for event type: %s", event.type)
            return

        await asyncio.gather(
            *(self._safe_invoke(cb, event) for cb in callbacks),
            return_exceptions=True,
        )

    def subscribe(self, event_type: str, callback: Callback) -> None:
        """Register a callback; event_type="*" receives every event."""
        self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callback) -> None:
        callbacks = self._subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    async def _safe_invoke(self, callback: Callback, event: Event) -> None:
        try:
            await callback(event)
        except Exception:
            logger.exception("Error in event handler for %s", event.type)

    def _persist(self, event: Event) -> None:
        """Append event to today's JSONL audit file."""
        if self._events_dir is None:
            return

        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        filepath = self._events_dir / f"{today}.jsonl"
        try:
            with open(filepath, "a") as f:
                f.write(event.model_dump_json() + "\n")
        except OSError:
            logger.exception("Failed to persist event to %s", filepath)

    def subscriber_count(self, event_type: str | None = None) -> int:
        if event_type is None:
            return sum(len(cbs) for cbs in self._subscribers.values())
        return len(self._subscribers.get(event_type, []))
