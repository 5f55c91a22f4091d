"""
Periodic background tasks for the station: the safety-net refresh of the
kitchen queue and ledger, and the clock tick that keeps wait times and the
business-day window current between feed events.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable

from shared.config.logging import get_logger

logger = get_logger(__name__)


class PeriodicRefresher:
    """Run a callback every `interval` seconds until stopped."""

    def __init__(self, name: str, interval: float, callback: Callable[[], Any], run_immediately: bool = True):
        self.name = name
        self.interval = interval
        self._callback = callback
        self._run_immediately = run_immediately
        self._running = False
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._running:
            logger.warning("Refresher already running", name=self.name)
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Refresher started", name=self.name, interval=self.interval)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Refresher stopped", name=self.name)

    async def run_once(self) -> None:
        result = self._callback()
        if inspect.isawaitable(result):
            await result

    async def _run_loop(self) -> None:
        if not self._run_immediately:
            await asyncio.sleep(self.interval)
        while self._running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # keep ticking
                logger.error("Refresher error", name=self.name, error=str(e))
            await asyncio.sleep(self.interval)

    @property
    def running(self) -> bool:
        return self._running
