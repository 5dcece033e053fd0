"""PredictionService — placement, reads and cashout.

Placement fetches the live price before opening the transaction, so the event
row lock is never held across a network call. Inside the transaction the
event is re-checked under FOR UPDATE, the prediction row is inserted and the
stake is consumed through the allowance manager in the same unit of work.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pp_allowance.application.service import TokenAllowanceService
from src.pp_common.database import unit_of_work
from src.pp_common.datetime_utils import ensure_aware, utc_now
from src.pp_common.enums import (
    EventStatus,
    PointsTransactionType,
    PredictionStatus,
    ReferenceType,
)
from src.pp_common.errors import (
    AlreadyPredictedError,
    CashoutUnavailableError,
    EventAlreadyStartedError,
    EventNotFoundError,
    EventNotOpenError,
    ExternalUnavailableError,
    InvalidEventError,
    InvalidInputError,
    InvalidOutcomeError,
    InvalidStakeError,
    PredictionForbiddenError,
    PredictionNotFoundError,
)
from src.pp_common.id_generator import generate_id
from src.pp_common.outcomes import match_outcome_exact
from src.pp_common.pagination import decode_ts_cursor, encode_ts_cursor, split_page
from src.pp_event.application.schemas import EventStatsResponse
from src.pp_event.domain.models import Event
from src.pp_event.domain.repository import EventRepositoryProtocol
from src.pp_event.infrastructure.persistence import EventRepository
from src.pp_ledger.application.ledgers import points_ledger
from src.pp_ledger.domain.engine import LedgerEngine
from src.pp_ledger.domain.models import LedgerEntryInput
from src.pp_odds.domain.models import find_odds_outcome
from src.pp_odds.domain.provider import OddsProviderProtocol
from src.pp_odds.infrastructure.odds_api import OddsApiClient
from src.pp_prediction.domain.models import (
    CashoutQuote,
    CashoutResult,
    Prediction,
    PredictionPage,
    UserPredictionStats,
)
from src.pp_prediction.domain.payouts import calculate_cashout_value
from src.pp_prediction.domain.repository import PredictionRepositoryProtocol
from src.pp_prediction.infrastructure.persistence import PredictionRepository

logger = logging.getLogger(__name__)


class PredictionService:
    def __init__(
        self,
        repo: PredictionRepositoryProtocol | None = None,
        event_repo: EventRepositoryProtocol | None = None,
        allowance: TokenAllowanceService | None = None,
        points: LedgerEngine | None = None,
        provider: OddsProviderProtocol | None = None,
        min_stake: int | None = None,
        max_stake: int | None = None,
        max_odds_age_seconds: int | None = None,
    ) -> None:
        self._repo: PredictionRepositoryProtocol = repo or PredictionRepository()
        self._events: EventRepositoryProtocol = event_repo or EventRepository()
        self._allowance = allowance or TokenAllowanceService()
        self._points = points or points_ledger
        self._provider: OddsProviderProtocol = provider or OddsApiClient()
        self._min_stake = settings.MIN_STAKE_AMOUNT if min_stake is None else min_stake
        self._max_stake = settings.MAX_STAKE_AMOUNT if max_stake is None else max_stake
        self._max_odds_age = (
            settings.CASHOUT_ODDS_MAX_AGE_SECONDS
            if max_odds_age_seconds is None
            else max_odds_age_seconds
        )

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    async def place(
        self,
        db: AsyncSession,
        user_id: str,
        event_id: str,
        predicted_outcome: str,
        stake_amount: int,
    ) -> Prediction:
        if (
            isinstance(stake_amount, bool)
            or not isinstance(stake_amount, int)
            or not self._min_stake <= stake_amount <= self._max_stake
        ):
            raise InvalidStakeError(stake_amount, self._min_stake, self._max_stake)

        event = await self._get_event(db, event_id)
        if not event.has_external_mapping:
            raise InvalidEventError(f"event {event_id} has no external odds mapping")

        canonical = match_outcome_exact(predicted_outcome, event.outcomes)
        if canonical is None:
            raise InvalidOutcomeError(predicted_outcome, event.outcomes)

        odds = await self._provider.get_event_odds(
            event.external_sport_key or "", event.external_event_id or ""
        )
        if odds is None:
            raise ExternalUnavailableError(f"no live odds for event {event_id}")
        priced = find_odds_outcome(odds, canonical)
        if priced is None:
            raise ExternalUnavailableError(f"no live price for outcome '{canonical}'")

        async with unit_of_work(db):
            locked = await self._events.get_for_update(db, event_id)
            if locked is None:
                raise EventNotFoundError(event_id)
            if locked.status != EventStatus.OPEN:
                raise EventNotOpenError(event_id, locked.status)
            if ensure_aware(locked.starts_at) <= utc_now():
                raise EventAlreadyStartedError(event_id)
            if await self._repo.exists_for_user_event(db, user_id, event_id):
                raise AlreadyPredictedError(event_id)

            prediction = await self._repo.create(
                db,
                prediction_id=generate_id(),
                user_id=user_id,
                event_id=event_id,
                predicted_outcome=canonical,
                stake_amount=stake_amount,
                original_odds=priced.price,
            )
            await self._allowance.consume_tokens(
                db, user_id, stake_amount, prediction.id, join=True
            )

        logger.info(
            "Prediction placed: id=%s user=%s event=%s outcome=%r stake=%d odds=%s",
            prediction.id, user_id, event_id, canonical, stake_amount, priced.price,
        )
        return prediction

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_by_id(
        self, db: AsyncSession, prediction_id: str, user_id: str
    ) -> Prediction:
        prediction = await self._repo.get_by_id(db, prediction_id)
        if prediction is None:
            raise PredictionNotFoundError(prediction_id)
        if prediction.user_id != user_id:
            raise PredictionForbiddenError()
        return prediction

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None = None,
        cursor: str | None = None,
        limit: int = 20,
    ) -> PredictionPage:
        if status is not None and status not in PredictionStatus.__members__:
            raise InvalidInputError(f"unknown prediction status {status}")
        cursor_ts, cursor_id = decode_ts_cursor(cursor)
        rows = await self._repo.list_by_user(
            db, user_id, status, cursor_ts, cursor_id, limit + 1
        )
        page, has_more = split_page(rows, limit)
        next_cursor = None
        if has_more and page and page[-1].created_at is not None:
            next_cursor = encode_ts_cursor(page[-1].created_at, page[-1].id)
        return PredictionPage(items=page, next_cursor=next_cursor, has_more=has_more)

    async def get_event_stats(self, db: AsyncSession, event_id: str) -> EventStatsResponse:
        event = await self._get_event(db, event_id)
        stats = await self._repo.event_outcome_stats(db, event_id)
        return EventStatsResponse.from_stats(event, stats)

    async def get_user_stats(self, db: AsyncSession, user_id: str) -> UserPredictionStats:
        return await self._repo.user_stats(db, user_id)

    # ------------------------------------------------------------------
    # Cashout
    # ------------------------------------------------------------------

    async def get_cashout_value(
        self, db: AsyncSession, user_id: str, prediction_id: str
    ) -> CashoutQuote:
        prediction = await self._repo.get_by_id(db, prediction_id)
        if prediction is None:
            raise PredictionNotFoundError(prediction_id)
        if prediction.user_id != user_id:
            raise PredictionForbiddenError()
        if prediction.status != PredictionStatus.PENDING or prediction.cashed_out_at:
            raise CashoutUnavailableError("prediction is not eligible for cashout")

        event = await self._get_event(db, prediction.event_id)
        if EventStatus(event.status).is_terminal:
            raise CashoutUnavailableError("event is already settled")
        if not event.has_external_mapping:
            raise CashoutUnavailableError("event is missing odds mapping")

        try:
            odds = await self._provider.get_event_odds(
                event.external_sport_key or "", event.external_event_id or ""
            )
        except ExternalUnavailableError as exc:
            raise CashoutUnavailableError("unable to fetch live odds") from exc
        if odds is None:
            raise CashoutUnavailableError("unable to fetch live odds")

        now = utc_now()
        age_seconds = max(0, int((now - ensure_aware(odds.updated_at)).total_seconds()))
        if age_seconds > self._max_odds_age:
            raise CashoutUnavailableError("odds data is too stale, try again in a moment")

        priced = find_odds_outcome(odds, prediction.predicted_outcome)
        if priced is None:
            raise CashoutUnavailableError("outcome not found in live odds")
        if not prediction.original_odds:
            raise CashoutUnavailableError("original odds not available")

        event_started = ensure_aware(event.starts_at) <= now
        value = calculate_cashout_value(
            prediction.stake_amount, prediction.original_odds, priced.price, event_started
        )
        return CashoutQuote(
            prediction_id=prediction_id,
            cashout_value=value,
            current_odds=priced.price,
            original_odds=prediction.original_odds,
            event_started=event_started,
            odds_age_seconds=age_seconds,
            odds_updated_at=odds.updated_at,
        )

    async def cashout(
        self, db: AsyncSession, user_id: str, prediction_id: str
    ) -> CashoutResult:
        quote = await self.get_cashout_value(db, user_id, prediction_id)
        if quote.cashout_value <= 0:
            raise CashoutUnavailableError("cashout value is zero")

        async with unit_of_work(db):
            locked = await self._repo.get_for_update(db, prediction_id)
            if locked is None or locked.user_id != user_id:
                raise PredictionNotFoundError(prediction_id)
            if locked.status != PredictionStatus.PENDING or locked.cashed_out_at:
                raise CashoutUnavailableError("prediction is not eligible for cashout")

            credit = await self._points.credit(
                db,
                LedgerEntryInput(
                    user_id=user_id,
                    amount=quote.cashout_value,
                    tx_type=PointsTransactionType.CASHOUT,
                    reference_type=ReferenceType.PREDICTION.value,
                    reference_id=prediction_id,
                    description=f"Cashout for prediction {prediction_id}",
                ),
                join=True,
            )
            updated = await self._repo.mark_cashed_out(
                db, prediction_id, quote.cashout_value, utc_now()
            )

        logger.info(
            "Prediction cashed out: id=%s user=%s amount=%d current_odds=%s",
            prediction_id, user_id, quote.cashout_value, quote.current_odds,
        )
        return CashoutResult(
            prediction=updated,
            cashout_amount=quote.cashout_value,
            points_balance=credit.new_balance,
        )

    async def _get_event(self, db: AsyncSession, event_id: str) -> Event:
        event = await self._events.get_by_id(db, event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event
