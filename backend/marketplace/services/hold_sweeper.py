"""
Periodic release of abandoned checkouts.

A single sweeper task per deployment calls
ReservationEngine.release_expired_holds every interval. Running it twice is
harmless (an already-cancelled hold is a no-op) but wastes work, so the
lifespan starts exactly one.
"""

import asyncio
from typing import Optional

from marketplace.core.logging import get_logger
from marketplace.services.reservation_engine import ReservationEngine

logger = get_logger(__name__)


class HoldSweeper:
    def __init__(self, engine: ReservationEngine, interval_seconds: float = 60.0):
        self._engine = engine
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        return await self._engine.release_expired_holds()

    async def run_forever(self) -> None:
        logger.info("hold_sweeper_started", interval_seconds=self._interval)
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Retried on the next tick
                logger.error("hold_sweep_failed", error=str(e), exc_info=True)
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self.run_forever(), name="hold-sweeper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("hold_sweeper_stopped")
