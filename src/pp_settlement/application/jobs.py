"""In-process periodic jobs started from the application lifespan.

  settlement   SettlementWorker.run_once           SETTLEMENT_INTERVAL_SECONDS
  odds-sync    OddsSyncService.run_once            ODDS_SYNC_INTERVAL_SECONDS
  auto-lock    EventService.auto_lock_started_events  AUTO_LOCK_INTERVAL_SECONDS

Each tick logs and swallows its own failure so the loop keeps running; stop()
cancels the loops and waits for them to finish.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pp_common.database import async_session_factory
from src.pp_event.application.service import EventService
from src.pp_odds.application.sync import OddsSyncService
from src.pp_settlement.application.worker import SettlementWorker

logger = logging.getLogger(__name__)


class BackgroundJobs:
    def __init__(
        self,
        worker: SettlementWorker,
        odds_sync: OddsSyncService,
        event_service: EventService,
        session_factory: Callable[[], AsyncSession] | None = None,
    ) -> None:
        self._worker = worker
        self._odds_sync = odds_sync
        self._events = event_service
        self._session_factory = session_factory or async_session_factory
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(
                self._loop("settlement", settings.SETTLEMENT_INTERVAL_SECONDS, self._settle)
            ),
            asyncio.create_task(
                self._loop("odds-sync", settings.ODDS_SYNC_INTERVAL_SECONDS, self._sync_odds)
            ),
            asyncio.create_task(
                self._loop("auto-lock", settings.AUTO_LOCK_INTERVAL_SECONDS, self._auto_lock)
            ),
        ]
        logger.info("Background jobs started: %d loop(s)", len(self._tasks))

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Background jobs stopped")

    async def _loop(
        self, name: str, interval: float, job: Callable[[], Awaitable[None]]
    ) -> None:
        while True:
            try:
                await job()
            except Exception:
                logger.exception("Background job %s failed", name)
            await asyncio.sleep(interval)

    async def _settle(self) -> None:
        await self._worker.run_once()

    async def _sync_odds(self) -> None:
        async with self._session_factory() as db:
            await self._odds_sync.run_once(db)

    async def _auto_lock(self) -> None:
        async with self._session_factory() as db:
            await self._events.auto_lock_started_events(db)
