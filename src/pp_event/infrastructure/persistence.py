"""EventRepository — concrete implementation of EventRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
Row locks (FOR UPDATE) are held until the caller's unit of work ends.
"""

import json
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.errors import EventNotFoundError, InternalError
from src.pp_event.domain.models import Event, NewEvent
from src.pp_prediction.domain.models import Prediction
from src.pp_prediction.infrastructure.persistence import PREDICTION_COLUMNS, row_to_prediction

_EVENT_COLUMNS = """e.id, e.title, e.description, e.starts_at, e.outcomes,
                  e.payout_multiplier, e.status, e.final_outcome,
                  e.external_event_id, e.external_sport_key,
                  e.current_odds, e.odds_updated_at,
                  e.created_by, e.settled_by, e.settled_at,
                  e.created_at, e.updated_at"""

# ---------------------------------------------------------------------------
# SQL: events
# ---------------------------------------------------------------------------

_INSERT_EVENT_SQL = text(f"""
    INSERT INTO events AS e
        (id, title, description, starts_at, outcomes, payout_multiplier, status,
         external_event_id, external_sport_key, created_by)
    VALUES
        (:id, :title, :description, :starts_at, :outcomes, :payout_multiplier, 'OPEN',
         :external_event_id, :external_sport_key, :created_by)
    RETURNING {_EVENT_COLUMNS}
""")

_GET_EVENT_SQL = text(f"""
    SELECT {_EVENT_COLUMNS},
           (SELECT COUNT(*) FROM predictions p WHERE p.event_id = e.id) AS prediction_count
    FROM events e
    WHERE e.id = :event_id
""")

_GET_EVENT_FOR_UPDATE_SQL = text(f"""
    SELECT {_EVENT_COLUMNS}
    FROM events e
    WHERE e.id = :event_id
    FOR UPDATE
""")

_LIST_EVENTS_SQL = text(f"""
    SELECT {_EVENT_COLUMNS},
           (SELECT COUNT(*) FROM predictions p WHERE p.event_id = e.id) AS prediction_count
    FROM events e
    WHERE
        (CAST(:status AS TEXT) IS NULL OR e.status = CAST(:status AS TEXT))
        AND (CAST(:starts_after AS TIMESTAMPTZ) IS NULL
             OR e.starts_at > CAST(:starts_after AS TIMESTAMPTZ))
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR e.starts_at > CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                e.starts_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND e.id > CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY e.starts_at ASC, e.id ASC
    LIMIT :limit
""")

_COUNT_EVENTS_SQL = text("""
    SELECT COUNT(*) AS total
    FROM events e
    WHERE
        (CAST(:status AS TEXT) IS NULL OR e.status = CAST(:status AS TEXT))
        AND (CAST(:starts_after AS TIMESTAMPTZ) IS NULL
             OR e.starts_at > CAST(:starts_after AS TIMESTAMPTZ))
""")

_SET_STATUS_SQL = text(f"""
    UPDATE events AS e
    SET status = :status, updated_at = NOW()
    WHERE e.id = :event_id
    RETURNING {_EVENT_COLUMNS}
""")

_MARK_SETTLED_SQL = text("""
    UPDATE events
    SET status = 'SETTLED',
        final_outcome = :final_outcome,
        settled_by = :settled_by,
        settled_at = :settled_at,
        updated_at = NOW()
    WHERE id = :event_id
""")

_MARK_CANCELLED_SQL = text("""
    UPDATE events
    SET status = 'CANCELLED',
        settled_by = :cancelled_by,
        settled_at = :cancelled_at,
        updated_at = NOW()
    WHERE id = :event_id
""")

_LOCK_STARTED_SQL = text("""
    UPDATE events
    SET status = 'LOCKED', updated_at = NOW()
    WHERE status = 'OPEN' AND starts_at <= :now
""")

_UPDATE_ODDS_SQL = text("""
    UPDATE events
    SET current_odds = CAST(:odds AS JSONB),
        odds_updated_at = :odds_updated_at,
        updated_at = NOW()
    WHERE id = :event_id
""")

_LIST_SETTLEABLE_SQL = text(f"""
    SELECT {_EVENT_COLUMNS}
    FROM events e
    WHERE e.status = 'LOCKED'
      AND e.external_event_id IS NOT NULL
      AND e.external_sport_key IS NOT NULL
      AND (
            CAST(:after_ts AS TIMESTAMPTZ) IS NULL
            OR e.starts_at > CAST(:after_ts AS TIMESTAMPTZ)
            OR (
                e.starts_at = CAST(:after_ts AS TIMESTAMPTZ)
                AND e.id > CAST(:after_id AS TEXT)
            )
      )
    ORDER BY e.starts_at ASC, e.id ASC
    LIMIT :limit
""")

_LIST_ODDS_TARGETS_SQL = text(f"""
    SELECT {_EVENT_COLUMNS}
    FROM events e
    WHERE e.status IN ('OPEN', 'LOCKED')
      AND e.external_event_id IS NOT NULL
      AND e.external_sport_key IS NOT NULL
    ORDER BY e.external_sport_key, e.starts_at
""")

# ---------------------------------------------------------------------------
# SQL: prediction rows touched by settle / cancel
# ---------------------------------------------------------------------------

_LOCK_PENDING_PREDICTIONS_SQL = text(f"""
    SELECT {PREDICTION_COLUMNS}
    FROM predictions
    WHERE event_id = :event_id AND status = 'PENDING'
    ORDER BY id
    FOR UPDATE
""")

_MARK_WON_SQL = text("""
    UPDATE predictions
    SET status = 'WON', payout = :payout, settled_at = :settled_at, updated_at = NOW()
    WHERE id = :prediction_id AND status = 'PENDING'
""")

_MARK_LOST_SQL = text("""
    UPDATE predictions
    SET status = 'LOST', payout = 0, settled_at = :settled_at, updated_at = NOW()
    WHERE id = :prediction_id AND status = 'PENDING'
""")

_MARK_REFUNDED_SQL = text("""
    UPDATE predictions
    SET status = 'REFUNDED', settled_at = :settled_at, updated_at = NOW()
    WHERE id = :prediction_id AND status = 'PENDING'
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _load_json(value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, str):
        loaded = json.loads(value)
        return loaded if isinstance(loaded, dict) else None
    return dict(value)


def _row_to_event(row: Any) -> Event:
    mapping = row._mapping
    return Event(
        id=row.id,
        title=row.title,
        description=row.description,
        starts_at=row.starts_at,
        outcomes=list(row.outcomes or []),
        payout_multiplier=row.payout_multiplier,
        status=row.status,
        final_outcome=row.final_outcome,
        external_event_id=row.external_event_id,
        external_sport_key=row.external_sport_key,
        current_odds=_load_json(row.current_odds),
        odds_updated_at=row.odds_updated_at,
        created_by=row.created_by,
        settled_by=row.settled_by,
        settled_at=row.settled_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
        prediction_count=int(mapping.get("prediction_count") or 0),
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class EventRepository:
    async def create(
        self, db: AsyncSession, event_id: str, data: NewEvent, created_by: str
    ) -> Event:
        result = await db.execute(
            _INSERT_EVENT_SQL,
            {
                "id": event_id,
                "title": data.title,
                "description": data.description,
                "starts_at": data.starts_at,
                "outcomes": data.outcomes,
                "payout_multiplier": data.payout_multiplier,
                "external_event_id": data.external_event_id,
                "external_sport_key": data.external_sport_key,
                "created_by": created_by,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Event insert returned no rows")
        return _row_to_event(row)

    async def get_by_id(self, db: AsyncSession, event_id: str) -> Event | None:
        row = (await db.execute(_GET_EVENT_SQL, {"event_id": event_id})).fetchone()
        return _row_to_event(row) if row else None

    async def get_for_update(self, db: AsyncSession, event_id: str) -> Event | None:
        row = (await db.execute(_GET_EVENT_FOR_UPDATE_SQL, {"event_id": event_id})).fetchone()
        return _row_to_event(row) if row else None

    async def list_events(
        self,
        db: AsyncSession,
        status: str | None,
        starts_after: datetime | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Event]:
        result = await db.execute(
            _LIST_EVENTS_SQL,
            {
                "status": status,
                "starts_after": starts_after,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_event(row) for row in result.fetchall()]

    async def count_events(
        self, db: AsyncSession, status: str | None, starts_after: datetime | None
    ) -> int:
        row = (
            await db.execute(
                _COUNT_EVENTS_SQL, {"status": status, "starts_after": starts_after}
            )
        ).fetchone()
        return int(row.total) if row else 0

    async def set_status(self, db: AsyncSession, event_id: str, status: str) -> Event:
        row = (
            await db.execute(_SET_STATUS_SQL, {"event_id": event_id, "status": status})
        ).fetchone()
        if row is None:
            raise EventNotFoundError(event_id)
        return _row_to_event(row)

    async def mark_settled(
        self,
        db: AsyncSession,
        event_id: str,
        final_outcome: str,
        settled_by: str,
        settled_at: datetime,
    ) -> None:
        await db.execute(
            _MARK_SETTLED_SQL,
            {
                "event_id": event_id,
                "final_outcome": final_outcome,
                "settled_by": settled_by,
                "settled_at": settled_at,
            },
        )

    async def mark_cancelled(
        self, db: AsyncSession, event_id: str, cancelled_by: str, cancelled_at: datetime
    ) -> None:
        await db.execute(
            _MARK_CANCELLED_SQL,
            {"event_id": event_id, "cancelled_by": cancelled_by, "cancelled_at": cancelled_at},
        )

    async def lock_started_events(self, db: AsyncSession, now: datetime) -> int:
        result = await db.execute(_LOCK_STARTED_SQL, {"now": now})
        return int(result.rowcount or 0)  # type: ignore[attr-defined]

    async def update_odds(
        self,
        db: AsyncSession,
        event_id: str,
        odds: dict[str, Any],
        odds_updated_at: datetime,
    ) -> None:
        await db.execute(
            _UPDATE_ODDS_SQL,
            {
                "event_id": event_id,
                "odds": json.dumps(odds),
                "odds_updated_at": odds_updated_at,
            },
        )

    async def list_settleable(
        self,
        db: AsyncSession,
        limit: int,
        after: tuple[datetime, str] | None = None,
    ) -> list[Event]:
        after_ts, after_id = after if after else (None, None)
        result = await db.execute(
            _LIST_SETTLEABLE_SQL,
            {"limit": limit, "after_ts": after_ts, "after_id": after_id},
        )
        return [_row_to_event(row) for row in result.fetchall()]

    async def list_odds_targets(self, db: AsyncSession) -> list[Event]:
        result = await db.execute(_LIST_ODDS_TARGETS_SQL)
        return [_row_to_event(row) for row in result.fetchall()]

    async def lock_pending_predictions(
        self, db: AsyncSession, event_id: str
    ) -> list[Prediction]:
        result = await db.execute(_LOCK_PENDING_PREDICTIONS_SQL, {"event_id": event_id})
        return [row_to_prediction(row) for row in result.fetchall()]

    async def mark_prediction_won(
        self, db: AsyncSession, prediction_id: str, payout: int, settled_at: datetime
    ) -> None:
        await db.execute(
            _MARK_WON_SQL,
            {"prediction_id": prediction_id, "payout": payout, "settled_at": settled_at},
        )

    async def mark_prediction_lost(
        self, db: AsyncSession, prediction_id: str, settled_at: datetime
    ) -> None:
        await db.execute(
            _MARK_LOST_SQL, {"prediction_id": prediction_id, "settled_at": settled_at}
        )

    async def mark_prediction_refunded(
        self, db: AsyncSession, prediction_id: str, settled_at: datetime
    ) -> None:
        await db.execute(
            _MARK_REFUNDED_SQL, {"prediction_id": prediction_id, "settled_at": settled_at}
        )
