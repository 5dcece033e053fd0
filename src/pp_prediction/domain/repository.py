from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_prediction.domain.models import OutcomeStat, Prediction, UserPredictionStats


class PredictionRepositoryProtocol(Protocol):
    async def create(
        self,
        db: AsyncSession,
        prediction_id: str,
        user_id: str,
        event_id: str,
        predicted_outcome: str,
        stake_amount: int,
        original_odds: Decimal | None,
    ) -> Prediction:
        """Raises AlreadyPredictedError on the (user_id, event_id) unique violation."""
        ...

    async def get_by_id(self, db: AsyncSession, prediction_id: str) -> Prediction | None: ...

    async def get_for_update(
        self, db: AsyncSession, prediction_id: str
    ) -> Prediction | None: ...

    async def exists_for_user_event(
        self, db: AsyncSession, user_id: str, event_id: str
    ) -> bool: ...

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Prediction]: ...

    async def mark_cashed_out(
        self, db: AsyncSession, prediction_id: str, amount: int, cashed_out_at: datetime
    ) -> Prediction: ...

    async def event_outcome_stats(
        self, db: AsyncSession, event_id: str
    ) -> list[OutcomeStat]: ...

    async def user_stats(self, db: AsyncSession, user_id: str) -> UserPredictionStats: ...
