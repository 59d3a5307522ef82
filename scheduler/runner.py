"""Refresh loop -- re-evaluates the dashboard on a fixed interval.

Every `interval` seconds:
1. Runs one Dashboard evaluation cycle
2. Logs and survives any failure, so a bad upstream minute never stops the loop
"""

from __future__ import annotations

import asyncio
import logging

from engine.dashboard import Dashboard

logger = logging.getLogger(__name__)


class RefreshLoop:
    """Periodically refreshes the latest market overview.

    Usage:
        loop = RefreshLoop(dashboard, interval=60)
        await loop.start()
        ...
        await loop.stop()
    """

    def __init__(self, dashboard: Dashboard, interval: float = 60) -> None:
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive, got {interval!r}")
        self._dashboard = dashboard
        self._interval = interval
        self._running = False
        self._task: asyncio.Task | None = None
        self._cycles = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def cycles(self) -> int:
        """Number of completed evaluation cycles."""
        return self._cycles

    async def start(self) -> None:
        """Start the refresh loop."""
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Refresh loop started (every %ss)", self._interval)

    async def stop(self) -> None:
        """Stop the refresh loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Refresh loop stopped")

    async def _loop(self) -> None:
        while self._running:
            await self.run_once()
            await asyncio.sleep(self._interval)

    async def run_once(self) -> bool:
        """Run a single cycle; returns False when it failed."""
        try:
            await self._dashboard.evaluate()
        except Exception:
            logger.exception("Error in refresh cycle")
            return False
        self._cycles += 1
        return True
