"""
Dev Sweep Scheduler Adapter.

In-process periodic runner for the auto-publish sweep. Runs as an asyncio
task on the application's event loop, started and stopped by the FastAPI
lifespan. Production may instead trigger POST /api/admin/sweep from an
external cron; both paths call the same sweep.

Key behaviors:
- First sweep runs one interval after start
- A failing sweep is logged and the loop keeps polling
- trigger_now() runs a sweep immediately, independent of the loop
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from src.components.scheduler import SweepOutput

logger = logging.getLogger(__name__)

SweepCallable = Callable[[], Awaitable[SweepOutput]]


class SweepScheduler:
    """
    Background auto-publish scheduler.

    Polls the sweep at a configurable interval until stopped.
    """

    def __init__(
        self,
        sweep: SweepCallable,
        poll_interval_seconds: float = 60.0,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            sweep: Coroutine function running one sweep
            poll_interval_seconds: Interval between sweeps
        """
        self._sweep = sweep
        self._poll_interval = poll_interval_seconds
        self._task: asyncio.Task[None] | None = None

    def start(self) -> None:
        """Start the background loop on the running event loop."""
        if self.is_running:
            return

        self._task = asyncio.create_task(self._poll_loop(), name="auto-publish-sweep")
        logger.info("Sweep scheduler started (poll interval: %.1fs)", self._poll_interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return

        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Sweep scheduler stopped")

    async def trigger_now(self) -> SweepOutput:
        """Run one sweep immediately."""
        return await self._sweep()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                result = await self._sweep()
                if result.failed:
                    logger.warning(
                        "Sweep left %d post(s) scheduled after failed promotion",
                        len(result.failed),
                    )
            except Exception:
                logger.exception("Error in sweep poll loop")
