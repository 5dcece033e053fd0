"""RewardRepository — raw SQL over rewards and redemptions.

asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.errors import (
    InternalError,
    InvalidRewardError,
    RedemptionNotFoundError,
    RewardNotFoundError,
)
from src.pp_reward.domain.models import (
    REWARD_UPDATABLE_FIELDS,
    NewReward,
    Redemption,
    Reward,
)

_REWARD_COLUMNS = """id, name, description, points_cost, stock_limit, stock_claimed,
                     image_url, is_active, created_at, updated_at"""

_REDEMPTION_COLUMNS = """r.id, r.user_id, r.reward_id, r.points_cost, r.status,
                         r.fulfilled_by, r.fulfilled_at, r.fulfilment_note,
                         r.created_at, r.updated_at, w.name AS reward_name"""

# ---------------------------------------------------------------------------
# SQL: rewards
# ---------------------------------------------------------------------------

_INSERT_REWARD_SQL = text(f"""
    INSERT INTO rewards (id, name, description, points_cost, stock_limit, image_url, is_active)
    VALUES (:id, :name, :description, :points_cost, :stock_limit, :image_url, TRUE)
    RETURNING {_REWARD_COLUMNS}
""")

_GET_REWARD_SQL = text(f"SELECT {_REWARD_COLUMNS} FROM rewards WHERE id = :reward_id")

_GET_REWARD_FOR_UPDATE_SQL = text(f"""
    SELECT {_REWARD_COLUMNS} FROM rewards WHERE id = :reward_id FOR UPDATE
""")

_LIST_REWARDS_SQL = text(f"""
    SELECT {_REWARD_COLUMNS}
    FROM rewards
    WHERE (:active_only = FALSE OR is_active = TRUE)
    ORDER BY points_cost ASC, id ASC
    LIMIT :limit OFFSET :offset
""")

_COUNT_REWARDS_SQL = text("""
    SELECT COUNT(*) AS total FROM rewards WHERE (:active_only = FALSE OR is_active = TRUE)
""")

_ADJUST_STOCK_SQL = text("""
    UPDATE rewards
    SET stock_claimed = stock_claimed + :delta, updated_at = NOW()
    WHERE id = :reward_id
""")

# ---------------------------------------------------------------------------
# SQL: redemptions
# ---------------------------------------------------------------------------

_INSERT_REDEMPTION_SQL = text("""
    INSERT INTO redemptions (id, user_id, reward_id, points_cost, status)
    VALUES (:id, :user_id, :reward_id, :points_cost, 'PENDING')
""")

_GET_REDEMPTION_SQL = text(f"""
    SELECT {_REDEMPTION_COLUMNS}
    FROM redemptions r JOIN rewards w ON w.id = r.reward_id
    WHERE r.id = :redemption_id
""")

_GET_REDEMPTION_FOR_UPDATE_SQL = text(f"""
    SELECT {_REDEMPTION_COLUMNS}
    FROM redemptions r JOIN rewards w ON w.id = r.reward_id
    WHERE r.id = :redemption_id
    FOR UPDATE OF r
""")

_LIST_REDEMPTIONS_SQL = text(f"""
    SELECT {_REDEMPTION_COLUMNS}
    FROM redemptions r JOIN rewards w ON w.id = r.reward_id
    WHERE (CAST(:user_id AS TEXT) IS NULL OR r.user_id = CAST(:user_id AS TEXT))
      AND (CAST(:status AS TEXT) IS NULL OR r.status = CAST(:status AS TEXT))
      AND (
          CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
          OR r.created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
          OR (r.created_at = CAST(:cursor_ts AS TIMESTAMPTZ) AND r.id < CAST(:cursor_id AS TEXT))
      )
    ORDER BY r.created_at DESC, r.id DESC
    LIMIT :limit
""")

_CLOSE_REDEMPTION_SQL = text("""
    UPDATE redemptions
    SET status = :status,
        fulfilled_by = :closed_by,
        fulfilled_at = :closed_at,
        fulfilment_note = :note,
        updated_at = NOW()
    WHERE id = :redemption_id AND status = 'PENDING'
    RETURNING id
""")


def _row_to_reward(row: Any) -> Reward:
    return Reward(
        id=row.id,
        name=row.name,
        description=row.description,
        points_cost=row.points_cost,
        stock_limit=row.stock_limit,
        stock_claimed=row.stock_claimed,
        image_url=row.image_url,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_redemption(row: Any) -> Redemption:
    return Redemption(
        id=row.id,
        user_id=row.user_id,
        reward_id=row.reward_id,
        points_cost=row.points_cost,
        status=row.status,
        fulfilled_by=row.fulfilled_by,
        fulfilled_at=row.fulfilled_at,
        fulfilment_note=row.fulfilment_note,
        created_at=row.created_at,
        updated_at=row.updated_at,
        reward_name=row.reward_name,
    )


class RewardRepository:
    async def create_reward(self, db: AsyncSession, reward_id: str, data: NewReward) -> Reward:
        row = (
            await db.execute(
                _INSERT_REWARD_SQL,
                {
                    "id": reward_id,
                    "name": data.name,
                    "description": data.description,
                    "points_cost": data.points_cost,
                    "stock_limit": data.stock_limit,
                    "image_url": data.image_url,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Reward insert returned no rows")
        return _row_to_reward(row)

    async def get_reward(self, db: AsyncSession, reward_id: str) -> Reward | None:
        row = (await db.execute(_GET_REWARD_SQL, {"reward_id": reward_id})).fetchone()
        return _row_to_reward(row) if row else None

    async def get_reward_for_update(
        self, db: AsyncSession, reward_id: str
    ) -> Reward | None:
        row = (
            await db.execute(_GET_REWARD_FOR_UPDATE_SQL, {"reward_id": reward_id})
        ).fetchone()
        return _row_to_reward(row) if row else None

    async def update_reward(
        self, db: AsyncSession, reward_id: str, changes: dict[str, Any]
    ) -> Reward:
        columns = sorted(set(changes) & REWARD_UPDATABLE_FIELDS)
        if not columns:
            raise InvalidRewardError("no updatable fields given")
        # Column names come from the whitelist above, values are bound
        assignments = ", ".join(f"{col} = :{col}" for col in columns)
        sql = text(f"""
            UPDATE rewards SET {assignments}, updated_at = NOW()
            WHERE id = :reward_id
            RETURNING {_REWARD_COLUMNS}
        """)
        params = {col: changes[col] for col in columns}
        params["reward_id"] = reward_id
        row = (await db.execute(sql, params)).fetchone()
        if row is None:
            raise RewardNotFoundError(reward_id)
        return _row_to_reward(row)

    async def list_rewards(
        self, db: AsyncSession, active_only: bool, limit: int, offset: int
    ) -> list[Reward]:
        result = await db.execute(
            _LIST_REWARDS_SQL, {"active_only": active_only, "limit": limit, "offset": offset}
        )
        return [_row_to_reward(row) for row in result.fetchall()]

    async def count_rewards(self, db: AsyncSession, active_only: bool) -> int:
        row = (await db.execute(_COUNT_REWARDS_SQL, {"active_only": active_only})).fetchone()
        return int(row.total) if row else 0

    async def adjust_stock_claimed(self, db: AsyncSession, reward_id: str, delta: int) -> None:
        await db.execute(_ADJUST_STOCK_SQL, {"reward_id": reward_id, "delta": delta})

    async def create_redemption(
        self,
        db: AsyncSession,
        redemption_id: str,
        user_id: str,
        reward_id: str,
        points_cost: int,
    ) -> Redemption:
        await db.execute(
            _INSERT_REDEMPTION_SQL,
            {
                "id": redemption_id,
                "user_id": user_id,
                "reward_id": reward_id,
                "points_cost": points_cost,
            },
        )
        redemption = await self.get_redemption(db, redemption_id)
        if redemption is None:
            raise InternalError("Redemption insert returned no rows")
        return redemption

    async def get_redemption(
        self, db: AsyncSession, redemption_id: str
    ) -> Redemption | None:
        row = (
            await db.execute(_GET_REDEMPTION_SQL, {"redemption_id": redemption_id})
        ).fetchone()
        return _row_to_redemption(row) if row else None

    async def get_redemption_for_update(
        self, db: AsyncSession, redemption_id: str
    ) -> Redemption | None:
        row = (
            await db.execute(_GET_REDEMPTION_FOR_UPDATE_SQL, {"redemption_id": redemption_id})
        ).fetchone()
        return _row_to_redemption(row) if row else None

    async def list_redemptions(
        self,
        db: AsyncSession,
        user_id: str | None,
        status: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Redemption]:
        result = await db.execute(
            _LIST_REDEMPTIONS_SQL,
            {
                "user_id": user_id,
                "status": status,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_redemption(row) for row in result.fetchall()]

    async def close_redemption(
        self,
        db: AsyncSession,
        redemption_id: str,
        status: str,
        closed_by: str,
        note: str | None,
        closed_at: datetime,
    ) -> Redemption:
        row = (
            await db.execute(
                _CLOSE_REDEMPTION_SQL,
                {
                    "redemption_id": redemption_id,
                    "status": status,
                    "closed_by": closed_by,
                    "note": note,
                    "closed_at": closed_at,
                },
            )
        ).fetchone()
        if row is None:
            raise RedemptionNotFoundError(redemption_id)
        redemption = await self.get_redemption(db, redemption_id)
        if redemption is None:
            raise RedemptionNotFoundError(redemption_id)
        return redemption
