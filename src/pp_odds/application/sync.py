"""OddsSyncService — refresh the cached odds snapshot on mapped events.

One provider call per distinct sport key across OPEN/LOCKED events that carry
an external mapping. A failing sport is logged and counted; the remaining
sports are still synced.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.database import unit_of_work
from src.pp_common.datetime_utils import utc_now
from src.pp_common.errors import AppError
from src.pp_event.application.service import EventService
from src.pp_event.domain.models import Event
from src.pp_event.domain.repository import EventRepositoryProtocol
from src.pp_event.infrastructure.persistence import EventRepository
from src.pp_odds.domain.models import OddsSyncResult
from src.pp_odds.domain.provider import OddsProviderProtocol
from src.pp_odds.infrastructure.odds_api import OddsApiClient

logger = logging.getLogger(__name__)


@dataclass
class OddsSyncStatus:
    last_run_at: datetime | None = None
    last_error: str | None = None
    last_result: OddsSyncResult = field(default_factory=OddsSyncResult)


class OddsSyncService:
    def __init__(
        self,
        event_service: EventService | None = None,
        repo: EventRepositoryProtocol | None = None,
        provider: OddsProviderProtocol | None = None,
    ) -> None:
        self._events = event_service or EventService()
        self._repo: EventRepositoryProtocol = repo or EventRepository()
        self._provider: OddsProviderProtocol = provider or OddsApiClient()
        self._status = OddsSyncStatus()

    def get_status(self) -> OddsSyncStatus:
        return self._status

    async def run_once(self, db: AsyncSession) -> OddsSyncResult:
        result = OddsSyncResult()
        try:
            targets = await self._repo.list_odds_targets(db)
            by_sport: dict[str, list[Event]] = {}
            for event in targets:
                by_sport.setdefault(event.external_sport_key or "", []).append(event)

            for sport_key, events in by_sport.items():
                result.sports += 1
                try:
                    odds_list = await self._provider.get_sport_odds(sport_key)
                except AppError as exc:
                    logger.warning("Odds sync failed for sport=%s: %s", sport_key, exc.message)
                    result.failed += 1
                    result.errors.append(f"{sport_key}: {exc.message}")
                    continue

                by_event = {odds.event_id: odds for odds in odds_list}
                async with unit_of_work(db):
                    for event in events:
                        odds = by_event.get(event.external_event_id or "")
                        if odds is None or not odds.outcomes:
                            continue
                        await self._events.update_odds(db, event.id, odds, join=True)
                        result.updated += 1
        except Exception as exc:
            self._status = OddsSyncStatus(
                last_run_at=utc_now(), last_error=str(exc), last_result=result
            )
            raise

        self._status = OddsSyncStatus(last_run_at=utc_now(), last_result=result)
        logger.info(
            "Odds sync done: sports=%d updated=%d failed=%d",
            result.sports, result.updated, result.failed,
        )
        return result
