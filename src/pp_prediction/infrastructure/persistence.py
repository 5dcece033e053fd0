"""PredictionRepository — raw SQL over the predictions table.

The UNIQUE (user_id, event_id) constraint is the final guard against duplicate
predictions; its violation surfaces as AlreadyPredictedError.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.errors import AlreadyPredictedError, InternalError, PredictionNotFoundError
from src.pp_prediction.domain.models import OutcomeStat, Prediction, UserPredictionStats

PREDICTION_COLUMNS = """id, user_id, event_id, predicted_outcome, stake_amount, status,
                  original_odds, payout, cashout_amount, cashed_out_at, settled_at,
                  created_at, updated_at"""

_UNIQUE_USER_EVENT = "uq_predictions_user_event"

_INSERT_SQL = text(f"""
    INSERT INTO predictions
        (id, user_id, event_id, predicted_outcome, stake_amount, status, original_odds)
    VALUES
        (:id, :user_id, :event_id, :predicted_outcome, :stake_amount, 'PENDING', :original_odds)
    RETURNING {PREDICTION_COLUMNS}
""")

_GET_SQL = text(f"SELECT {PREDICTION_COLUMNS} FROM predictions WHERE id = :prediction_id")

_GET_FOR_UPDATE_SQL = text(f"""
    SELECT {PREDICTION_COLUMNS} FROM predictions WHERE id = :prediction_id FOR UPDATE
""")

_EXISTS_SQL = text("""
    SELECT 1 FROM predictions WHERE user_id = :user_id AND event_id = :event_id
""")

_LIST_BY_USER_SQL = text(f"""
    SELECT {PREDICTION_COLUMNS}
    FROM predictions
    WHERE user_id = :user_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (
          CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
          OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
          OR (created_at = CAST(:cursor_ts AS TIMESTAMPTZ) AND id < CAST(:cursor_id AS TEXT))
      )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_MARK_CASHED_OUT_SQL = text(f"""
    UPDATE predictions
    SET status = 'CASHED_OUT',
        payout = :amount,
        cashout_amount = :amount,
        cashed_out_at = :cashed_out_at,
        settled_at = :cashed_out_at,
        updated_at = NOW()
    WHERE id = :prediction_id AND status = 'PENDING' AND cashed_out_at IS NULL
    RETURNING {PREDICTION_COLUMNS}
""")

_EVENT_OUTCOME_STATS_SQL = text("""
    SELECT predicted_outcome AS outcome,
           COUNT(*) AS count,
           COALESCE(SUM(stake_amount), 0) AS total_staked
    FROM predictions
    WHERE event_id = :event_id
    GROUP BY predicted_outcome
    ORDER BY predicted_outcome
""")

_USER_STATS_SQL = text("""
    SELECT
        COUNT(*) AS total,
        COUNT(*) FILTER (WHERE status = 'WON') AS won,
        COUNT(*) FILTER (WHERE status = 'LOST') AS lost,
        COUNT(*) FILTER (WHERE status = 'PENDING') AS pending,
        COUNT(*) FILTER (WHERE status = 'CASHED_OUT') AS cashed_out,
        COUNT(*) FILTER (WHERE status = 'REFUNDED') AS refunded,
        COALESCE(SUM(payout) FILTER (WHERE status = 'WON'), 0) AS total_winnings,
        COALESCE(SUM(stake_amount), 0) AS total_staked
    FROM predictions
    WHERE user_id = :user_id
""")


def row_to_prediction(row: Any) -> Prediction:
    return Prediction(
        id=row.id,
        user_id=row.user_id,
        event_id=row.event_id,
        predicted_outcome=row.predicted_outcome,
        stake_amount=row.stake_amount,
        status=row.status,
        original_odds=row.original_odds,
        payout=row.payout,
        cashout_amount=row.cashout_amount,
        cashed_out_at=row.cashed_out_at,
        settled_at=row.settled_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class PredictionRepository:
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
        try:
            result = await db.execute(
                _INSERT_SQL,
                {
                    "id": prediction_id,
                    "user_id": user_id,
                    "event_id": event_id,
                    "predicted_outcome": predicted_outcome,
                    "stake_amount": stake_amount,
                    "original_odds": original_odds,
                },
            )
        except IntegrityError as exc:
            if _UNIQUE_USER_EVENT in str(exc.orig):
                raise AlreadyPredictedError(event_id) from exc
            raise
        row = result.fetchone()
        if row is None:
            raise InternalError("Prediction insert returned no rows")
        return row_to_prediction(row)

    async def get_by_id(self, db: AsyncSession, prediction_id: str) -> Prediction | None:
        row = (await db.execute(_GET_SQL, {"prediction_id": prediction_id})).fetchone()
        return row_to_prediction(row) if row else None

    async def get_for_update(
        self, db: AsyncSession, prediction_id: str
    ) -> Prediction | None:
        row = (
            await db.execute(_GET_FOR_UPDATE_SQL, {"prediction_id": prediction_id})
        ).fetchone()
        return row_to_prediction(row) if row else None

    async def exists_for_user_event(
        self, db: AsyncSession, user_id: str, event_id: str
    ) -> bool:
        result = await db.execute(_EXISTS_SQL, {"user_id": user_id, "event_id": event_id})
        return result.fetchone() is not None

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Prediction]:
        result = await db.execute(
            _LIST_BY_USER_SQL,
            {
                "user_id": user_id,
                "status": status,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [row_to_prediction(row) for row in result.fetchall()]

    async def mark_cashed_out(
        self, db: AsyncSession, prediction_id: str, amount: int, cashed_out_at: datetime
    ) -> Prediction:
        row = (
            await db.execute(
                _MARK_CASHED_OUT_SQL,
                {"prediction_id": prediction_id, "amount": amount, "cashed_out_at": cashed_out_at},
            )
        ).fetchone()
        if row is None:
            raise PredictionNotFoundError(prediction_id)
        return row_to_prediction(row)

    async def event_outcome_stats(
        self, db: AsyncSession, event_id: str
    ) -> list[OutcomeStat]:
        result = await db.execute(_EVENT_OUTCOME_STATS_SQL, {"event_id": event_id})
        return [
            OutcomeStat(outcome=r.outcome, count=int(r.count), total_staked=int(r.total_staked))
            for r in result.fetchall()
        ]

    async def user_stats(self, db: AsyncSession, user_id: str) -> UserPredictionStats:
        row = (await db.execute(_USER_STATS_SQL, {"user_id": user_id})).fetchone()
        if row is None:
            return UserPredictionStats(0, 0, 0, 0, 0, 0, 0, 0)
        return UserPredictionStats(
            total=int(row.total),
            won=int(row.won),
            lost=int(row.lost),
            pending=int(row.pending),
            cashed_out=int(row.cashed_out),
            refunded=int(row.refunded),
            total_winnings=int(row.total_winnings),
            total_staked=int(row.total_staked),
        )
