"""EventService — event lifecycle and the settle / cancel fan-out.

State machine:
  OPEN -> LOCKED -> SETTLED
  OPEN | LOCKED -> CANCELLED
SETTLED and CANCELLED are terminal.

settle() and cancel() each run as one transaction: the event row is locked
FOR UPDATE, then every PENDING prediction of the event (ordered by id), then
the ledger postings and status writes. Any failure rolls back the whole unit,
so an event is never half-settled.
"""

import asyncio
import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pp_common.database import unit_of_work
from src.pp_common.datetime_utils import ensure_aware, utc_now
from src.pp_common.enums import (
    EventStatus,
    PointsTransactionType,
    ReferenceType,
    TokenTransactionType,
)
from src.pp_common.errors import (
    EventAlreadySettledError,
    EventNotFoundError,
    EventNotOpenError,
    ExternalUnavailableError,
    InvalidEventError,
    InvalidInputError,
    InvalidOutcomeError,
    SettlementTimeoutError,
)
from src.pp_common.id_generator import generate_id
from src.pp_common.outcomes import match_outcome_exact, normalize_outcome
from src.pp_common.pagination import decode_ts_cursor, encode_ts_cursor, split_page
from src.pp_event.application.schemas import EventOddsResponse
from src.pp_event.domain.models import (
    CancellationSummary,
    Event,
    EventPage,
    NewEvent,
    SettlementSummary,
)
from src.pp_event.domain.repository import EventRepositoryProtocol
from src.pp_event.infrastructure.persistence import EventRepository
from src.pp_ledger.application.ledgers import points_ledger, token_ledger
from src.pp_ledger.domain.engine import LedgerEngine
from src.pp_ledger.domain.models import LedgerEntryInput
from src.pp_odds.domain.models import NormalizedOdds
from src.pp_odds.domain.provider import OddsProviderProtocol
from src.pp_prediction.domain.models import Prediction
from src.pp_prediction.domain.payouts import calculate_payout

logger = logging.getLogger(__name__)

MIN_PAYOUT_MULTIPLIER = 1
MAX_PAYOUT_MULTIPLIER = 10


class EventService:
    def __init__(
        self,
        repo: EventRepositoryProtocol | None = None,
        token: LedgerEngine | None = None,
        points: LedgerEngine | None = None,
        settlement_timeout: float | None = None,
    ) -> None:
        self._repo: EventRepositoryProtocol = repo or EventRepository()
        self._token = token or token_ledger
        self._points = points or points_ledger
        self._timeout = (
            settings.SETTLEMENT_TIMEOUT_SECONDS
            if settlement_timeout is None
            else settlement_timeout
        )

    # ------------------------------------------------------------------
    # Create / read
    # ------------------------------------------------------------------

    async def create(self, db: AsyncSession, data: NewEvent, created_by: str) -> Event:
        cleaned = _validate_new_event(data, utc_now())
        async with unit_of_work(db):
            event = await self._repo.create(db, generate_id(), cleaned, created_by)
        logger.info("Event created: id=%s title=%r by=%s", event.id, event.title, created_by)
        return event

    async def get_by_id(self, db: AsyncSession, event_id: str) -> Event:
        event = await self._repo.get_by_id(db, event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    async def list(
        self,
        db: AsyncSession,
        status: str | None = None,
        upcoming: bool = False,
        cursor: str | None = None,
        limit: int = 20,
    ) -> EventPage:
        if status is not None and status not in EventStatus.__members__:
            raise InvalidInputError(f"unknown event status {status}")
        starts_after: datetime | None = None
        if upcoming:
            # Upcoming means still open for predictions
            status = EventStatus.OPEN.value
            starts_after = utc_now()

        cursor_ts, cursor_id = decode_ts_cursor(cursor)
        rows = await self._repo.list_events(
            db, status, starts_after, cursor_ts, cursor_id, limit + 1
        )
        page, has_more = split_page(rows, limit)
        total = await self._repo.count_events(db, status, starts_after)
        next_cursor = (
            encode_ts_cursor(page[-1].starts_at, page[-1].id) if has_more and page else None
        )
        return EventPage(items=page, next_cursor=next_cursor, has_more=has_more, total=total)

    async def get_odds(
        self, db: AsyncSession, event_id: str, provider: OddsProviderProtocol
    ) -> EventOddsResponse:
        """Live price when the provider answers, else the cached snapshot."""
        event = await self.get_by_id(db, event_id)
        if event.has_external_mapping:
            try:
                odds = await provider.get_event_odds(
                    event.external_sport_key or "", event.external_event_id or ""
                )
            except ExternalUnavailableError as exc:
                logger.warning("Live odds unavailable for event=%s: %s", event_id, exc.message)
                odds = None
            if odds is not None:
                return EventOddsResponse(
                    event_id=event.id,
                    odds=odds.to_json(),
                    odds_updated_at=odds.updated_at,
                    source="live",
                )
        if event.current_odds is not None:
            return EventOddsResponse(
                event_id=event.id,
                odds=event.current_odds,
                odds_updated_at=event.odds_updated_at,
                source="cached",
            )
        return EventOddsResponse(event_id=event.id, odds=None, odds_updated_at=None, source="none")

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    async def lock(self, db: AsyncSession, event_id: str) -> Event:
        async with unit_of_work(db):
            event = await self._repo.get_for_update(db, event_id)
            if event is None:
                raise EventNotFoundError(event_id)
            if EventStatus(event.status).is_terminal:
                raise EventAlreadySettledError(event_id, event.status)
            if event.status != EventStatus.OPEN:
                raise EventNotOpenError(event_id, event.status)
            locked = await self._repo.set_status(db, event_id, EventStatus.LOCKED.value)
        logger.info("Event locked: id=%s", event_id)
        return locked

    async def settle(
        self, db: AsyncSession, event_id: str, final_outcome: str, settled_by: str
    ) -> SettlementSummary:
        try:
            async with asyncio.timeout(self._timeout):
                summary = await self._settle(db, event_id, final_outcome, settled_by)
        except TimeoutError as exc:
            logger.error("Settlement of event=%s timed out after %ss", event_id, self._timeout)
            raise SettlementTimeoutError(event_id, self._timeout) from exc
        logger.info(
            "Event settled: id=%s outcome=%r predictions=%d winners=%d payout=%d by=%s",
            event_id, summary.final_outcome, summary.total_predictions,
            summary.winners, summary.total_payout, settled_by,
        )
        return summary

    async def _settle(
        self, db: AsyncSession, event_id: str, final_outcome: str, settled_by: str
    ) -> SettlementSummary:
        async with unit_of_work(db):
            event = await self._lock_settleable(db, event_id)

            canonical = match_outcome_exact(final_outcome, event.outcomes)
            if canonical is None:
                raise InvalidOutcomeError(final_outcome, event.outcomes)

            settled_at = utc_now()
            predictions = await self._repo.lock_pending_predictions(db, event_id)
            winners = losers = total_payout = 0
            # balance rows are locked in user order across every settlement
            for prediction in sorted(predictions, key=_by_user):
                if normalize_outcome(prediction.predicted_outcome) != normalize_outcome(canonical):
                    await self._repo.mark_prediction_lost(db, prediction.id, settled_at)
                    losers += 1
                    continue

                odds = prediction.original_odds or event.payout_multiplier
                payout = calculate_payout(prediction.stake_amount, odds)
                if payout > 0:
                    await self._points.credit(
                        db,
                        LedgerEntryInput(
                            user_id=prediction.user_id,
                            amount=payout,
                            tx_type=PointsTransactionType.PREDICTION_WIN,
                            reference_type=ReferenceType.PREDICTION.value,
                            reference_id=prediction.id,
                            description=f"Won prediction on: {event.title}",
                        ),
                        join=True,
                    )
                await self._repo.mark_prediction_won(db, prediction.id, payout, settled_at)
                winners += 1
                total_payout += payout

            await self._repo.mark_settled(db, event_id, canonical, settled_by, settled_at)

        return SettlementSummary(
            event_id=event_id,
            final_outcome=canonical,
            total_predictions=len(predictions),
            winners=winners,
            losers=losers,
            total_payout=total_payout,
            settled_at=settled_at,
        )

    async def cancel(
        self, db: AsyncSession, event_id: str, cancelled_by: str
    ) -> CancellationSummary:
        try:
            async with asyncio.timeout(self._timeout):
                summary = await self._cancel(db, event_id, cancelled_by)
        except TimeoutError as exc:
            logger.error("Cancellation of event=%s timed out after %ss", event_id, self._timeout)
            raise SettlementTimeoutError(event_id, self._timeout) from exc
        logger.info(
            "Event cancelled: id=%s refunded=%d tokens=%d by=%s",
            event_id, summary.refunded, summary.total_refunded, cancelled_by,
        )
        return summary

    async def _cancel(
        self, db: AsyncSession, event_id: str, cancelled_by: str
    ) -> CancellationSummary:
        async with unit_of_work(db):
            event = await self._lock_settleable(db, event_id)
            cancelled_at = utc_now()
            predictions = await self._repo.lock_pending_predictions(db, event_id)
            total_refunded = 0
            for prediction in sorted(predictions, key=_by_user):
                await self._token.credit(
                    db,
                    LedgerEntryInput(
                        user_id=prediction.user_id,
                        amount=prediction.stake_amount,
                        tx_type=TokenTransactionType.PREDICTION_REFUND,
                        reference_type=ReferenceType.PREDICTION.value,
                        reference_id=prediction.id,
                        description=f"Refund for cancelled event: {event.title}",
                    ),
                    join=True,
                )
                await self._repo.mark_prediction_refunded(db, prediction.id, cancelled_at)
                total_refunded += prediction.stake_amount
            await self._repo.mark_cancelled(db, event_id, cancelled_by, cancelled_at)

        return CancellationSummary(
            event_id=event_id,
            refunded=len(predictions),
            total_refunded=total_refunded,
            cancelled_at=cancelled_at,
        )

    async def _lock_settleable(self, db: AsyncSession, event_id: str) -> Event:
        event = await self._repo.get_for_update(db, event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        if EventStatus(event.status).is_terminal:
            raise EventAlreadySettledError(event_id, event.status)
        return event

    # ------------------------------------------------------------------
    # Background maintenance
    # ------------------------------------------------------------------

    async def auto_lock_started_events(self, db: AsyncSession) -> int:
        async with unit_of_work(db):
            count = await self._repo.lock_started_events(db, utc_now())
        if count:
            logger.info("Auto-locked %d started event(s)", count)
        return count

    async def update_odds(
        self, db: AsyncSession, event_id: str, odds: NormalizedOdds, *, join: bool = False
    ) -> None:
        async with unit_of_work(db, join=join):
            await self._repo.update_odds(db, event_id, odds.to_json(), odds.updated_at)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _by_user(prediction: Prediction) -> tuple[str, str]:
    return prediction.user_id, prediction.id


def _validate_new_event(data: NewEvent, now: datetime) -> NewEvent:
    title = data.title.strip()
    if not title:
        raise InvalidEventError("title is required")

    outcomes = [o.strip() for o in data.outcomes if o and o.strip()]
    if len(outcomes) < 2:
        raise InvalidEventError("at least 2 outcomes are required")
    if len({normalize_outcome(o) for o in outcomes}) != len(outcomes):
        raise InvalidEventError("outcomes must be distinct")

    starts_at = ensure_aware(data.starts_at)
    if starts_at <= now:
        raise InvalidEventError("start time must be in the future")

    if not MIN_PAYOUT_MULTIPLIER <= data.payout_multiplier <= MAX_PAYOUT_MULTIPLIER:
        raise InvalidEventError(
            f"payout multiplier must be between {MIN_PAYOUT_MULTIPLIER} and {MAX_PAYOUT_MULTIPLIER}"
        )

    return NewEvent(
        title=title,
        description=data.description,
        starts_at=starts_at,
        outcomes=outcomes,
        payout_multiplier=data.payout_multiplier,
        external_event_id=data.external_event_id or None,
        external_sport_key=data.external_sport_key or None,
    )
