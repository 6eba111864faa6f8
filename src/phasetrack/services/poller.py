"""Fallback auto-refresh for when no live socket is available."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta

from phasetrack.types import LivenessProbe, RefreshCallback

logger = logging.getLogger(__name__)


class AutoRefreshPoller:
    """Background task that reloads the snapshot on a fixed interval.

    Ticks are skipped while the socket is live so polling and push events
    never race each other with contradictory updates.
    """

    def __init__(
        self,
        refresh: RefreshCallback,
        is_live: LivenessProbe,
        interval_seconds: float,
    ) -> None:
        """Initialize poller.

        Args:
            refresh: Coroutine function performing a snapshot load.
            is_live: Returns True while a live socket delivers events.
            interval_seconds: Delay between ticks.
        """
        self._refresh = refresh
        self._is_live = is_live
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._next_run_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def next_run_at(self) -> datetime | None:
        return self._next_run_at

    def start(self) -> None:
        """Start the poller background task."""
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name="phasetrack-poller")
        logger.debug("Auto-refresh started (every %.0fs)", self._interval)

    async def stop(self) -> None:
        """Stop the poller background task."""
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._next_run_at = None
        logger.debug("Auto-refresh stopped")

    async def tick(self) -> bool:
        """Run one refresh unless a live socket makes it redundant.

        Returns:
            True if a refresh ran.
        """
        if self._is_live():
            logger.debug("Socket live, skipping auto-refresh")
            return False
        await self._refresh()
        return True

    async def _run_loop(self) -> None:
        """Main poller loop."""
        while not self._stop_event.is_set():
            self._next_run_at = datetime.now(UTC) + timedelta(seconds=self._interval)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                break  # Stop event was set
            except TimeoutError:
                pass  # Interval elapsed, time to refresh

            try:
                await self.tick()
            except Exception:
                logger.exception("Auto-refresh failed")
