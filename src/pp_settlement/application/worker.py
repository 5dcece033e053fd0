"""SettlementWorker — settles LOCKED events from completed provider scores.

A run:
  1. selects LOCKED events carrying both external ids, ordered by
     (starts_at, id) and bounded by the batch size; a full batch makes the
     next run resume past its last event, a short one wraps back to the start
  2. groups them by sport key and fetches scores once per group
  3. settles each completed event whose winner maps onto an outcome label,
     each in its own session and transaction

A failed score fetch marks every event of that sport as failed and the run
moves on. A failed settlement is recorded per event. An event settled or
cancelled by someone else in the meantime is not an error. Re-running never
double-pays: settle() re-checks the event status under its row lock.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pp_common.database import async_session_factory
from src.pp_common.datetime_utils import utc_now
from src.pp_common.errors import AppError, EventAlreadySettledError
from src.pp_event.application.service import EventService
from src.pp_event.domain.models import Event
from src.pp_event.domain.repository import EventRepositoryProtocol
from src.pp_event.infrastructure.persistence import EventRepository
from src.pp_odds.domain.provider import OddsProviderProtocol
from src.pp_odds.infrastructure.odds_api import OddsApiClient
from src.pp_settlement.domain.outcome import determine_outcome

logger = logging.getLogger(__name__)

SYSTEM_SETTLER = "system:settlement-worker"


@dataclass(frozen=True)
class SettlementError:
    event_id: str
    error: str


@dataclass
class SettlementStatus:
    is_running: bool = False
    last_run_at: datetime | None = None
    last_error: str | None = None
    settled_events: int = 0
    skipped_events: int = 0
    failed_events: int = 0
    errors: list[SettlementError] = field(default_factory=list)


class SettlementWorker:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] | None = None,
        event_service: EventService | None = None,
        provider: OddsProviderProtocol | None = None,
        repo: EventRepositoryProtocol | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._session_factory = session_factory or async_session_factory
        self._events = event_service or EventService()
        self._provider: OddsProviderProtocol = provider or OddsApiClient()
        self._repo: EventRepositoryProtocol = repo or EventRepository()
        self._batch_size = batch_size or settings.SETTLEMENT_BATCH_SIZE
        self._lock = asyncio.Lock()
        self._status = SettlementStatus()
        self._resume_after: tuple[datetime, str] | None = None

    def get_status(self) -> SettlementStatus:
        return replace(
            self._status, is_running=self._lock.locked(), errors=list(self._status.errors)
        )

    async def run_once(self) -> SettlementStatus:
        if self._lock.locked():
            logger.info("Settlement run already in progress, skipping")
            return self.get_status()

        async with self._lock:
            run = SettlementStatus()
            try:
                async with self._session_factory() as db:
                    events = await self._next_batch(db)
                for sport_key, group in _group_by_sport(events).items():
                    await self._settle_group(sport_key, group, run)
            except Exception as exc:
                logger.exception("Settlement run failed")
                run.last_error = str(exc) or type(exc).__name__
            else:
                if run.failed_events:
                    run.last_error = f"{run.failed_events} event(s) failed"

            run.last_run_at = utc_now()
            self._status = run

        logger.info(
            "Settlement run done: settled=%d skipped=%d failed=%d",
            run.settled_events, run.skipped_events, run.failed_events,
        )
        return self.get_status()

    async def _next_batch(self, db: AsyncSession) -> list[Event]:
        events = await self._repo.list_settleable(db, self._batch_size, self._resume_after)
        if not events and self._resume_after is not None:
            events = await self._repo.list_settleable(db, self._batch_size)
        if len(events) >= self._batch_size:
            last = events[-1]
            self._resume_after = (last.starts_at, last.id)
        else:
            self._resume_after = None
        return events

    async def _settle_group(
        self, sport_key: str, events: list[Event], run: SettlementStatus
    ) -> None:
        try:
            scores = await self._provider.get_scores(sport_key)
        except Exception as exc:
            message = exc.message if isinstance(exc, AppError) else str(exc)
            logger.error("Score fetch failed for sport=%s: %s", sport_key, message)
            for event in events:
                run.errors.append(
                    SettlementError(event_id=event.id, error=f"Score fetch failed: {message}")
                )
                run.failed_events += 1
            return

        by_id = {score.id: score for score in scores}
        for event in events:
            score = by_id.get(event.external_event_id or "")
            if score is None or not score.completed:
                run.skipped_events += 1
                continue

            outcome = determine_outcome(score, event.outcomes)
            if outcome is None:
                logger.warning(
                    "Could not determine outcome for event=%s (%s)", event.id, event.title
                )
                run.skipped_events += 1
                continue

            try:
                async with self._session_factory() as db:
                    await self._events.settle(db, event.id, outcome, SYSTEM_SETTLER)
            except EventAlreadySettledError:
                logger.info("Event %s already settled or cancelled, skipping", event.id)
                run.skipped_events += 1
            except AppError as exc:
                logger.error("Failed to settle event=%s: %s", event.id, exc.message)
                run.errors.append(SettlementError(event_id=event.id, error=exc.message))
                run.failed_events += 1
            except Exception as exc:
                logger.exception("Unexpected error settling event=%s", event.id)
                run.errors.append(SettlementError(event_id=event.id, error=str(exc)))
                run.failed_events += 1
            else:
                run.settled_events += 1


def _group_by_sport(events: list[Event]) -> dict[str, list[Event]]:
    groups: dict[str, list[Event]] = {}
    for event in events:
        if event.has_external_mapping:
            groups.setdefault(event.external_sport_key or "", []).append(event)
    return groups
