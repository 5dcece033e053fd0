"""Event repository Protocol.

Also owns the prediction-row writes performed by settlement and cancellation,
because those only ever happen under the event's row lock.
"""

from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_event.domain.models import Event, NewEvent
from src.pp_prediction.domain.models import Prediction


class EventRepositoryProtocol(Protocol):
    async def create(
        self, db: AsyncSession, event_id: str, data: NewEvent, created_by: str
    ) -> Event: ...

    async def get_by_id(self, db: AsyncSession, event_id: str) -> Event | None: ...

    async def get_for_update(self, db: AsyncSession, event_id: str) -> Event | None: ...

    async def list_events(
        self,
        db: AsyncSession,
        status: str | None,
        starts_after: datetime | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Event]: ...

    async def count_events(
        self, db: AsyncSession, status: str | None, starts_after: datetime | None
    ) -> int: ...

    async def set_status(self, db: AsyncSession, event_id: str, status: str) -> Event: ...

    async def mark_settled(
        self,
        db: AsyncSession,
        event_id: str,
        final_outcome: str,
        settled_by: str,
        settled_at: datetime,
    ) -> None: ...

    async def mark_cancelled(
        self, db: AsyncSession, event_id: str, cancelled_by: str, cancelled_at: datetime
    ) -> None: ...

    async def lock_started_events(self, db: AsyncSession, now: datetime) -> int: ...

    async def update_odds(
        self,
        db: AsyncSession,
        event_id: str,
        odds: dict[str, Any],
        odds_updated_at: datetime,
    ) -> None: ...

    async def list_settleable(
        self,
        db: AsyncSession,
        limit: int,
        after: tuple[datetime, str] | None = None,
    ) -> list[Event]:
        """LOCKED events carrying both external identifiers, ordered by (starts_at, id).

        ``after`` resumes strictly past that (starts_at, id) position.
        """
        ...

    async def list_odds_targets(self, db: AsyncSession) -> list[Event]:
        """OPEN/LOCKED events carrying both external identifiers."""
        ...

    async def lock_pending_predictions(
        self, db: AsyncSession, event_id: str
    ) -> list[Prediction]: ...

    async def mark_prediction_won(
        self, db: AsyncSession, prediction_id: str, payout: int, settled_at: datetime
    ) -> None: ...

    async def mark_prediction_lost(
        self, db: AsyncSession, prediction_id: str, settled_at: datetime
    ) -> None: ...

    async def mark_prediction_refunded(
        self, db: AsyncSession, prediction_id: str, settled_at: datetime
    ) -> None: ...
