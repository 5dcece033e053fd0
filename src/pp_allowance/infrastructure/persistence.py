"""AllowanceRepository — raw SQL over the token_allowances table."""

from datetime import date

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_allowance.domain.models import TokenAllowance
from src.pp_common.errors import InternalError

_GET_FOR_UPDATE_SQL = text("""
    SELECT user_id, tokens_remaining, last_reset_date
    FROM token_allowances
    WHERE user_id = :user_id
    FOR UPDATE
""")

# A concurrent first-time insert blocks on the unique index until the other
# transaction finishes, then returns no row.
_INSERT_IF_ABSENT_SQL = text("""
    INSERT INTO token_allowances (user_id, tokens_remaining, last_reset_date)
    VALUES (:user_id, :tokens_remaining, :today)
    ON CONFLICT (user_id) DO NOTHING
    RETURNING user_id, tokens_remaining, last_reset_date
""")

_UPDATE_SQL = text("""
    UPDATE token_allowances
    SET tokens_remaining = :tokens_remaining,
        last_reset_date = :last_reset_date,
        updated_at = NOW()
    WHERE user_id = :user_id
    RETURNING user_id, tokens_remaining, last_reset_date
""")


def _row_to_allowance(row: object) -> TokenAllowance:
    return TokenAllowance(
        user_id=row.user_id,  # type: ignore[attr-defined]
        tokens_remaining=row.tokens_remaining,  # type: ignore[attr-defined]
        last_reset_date=row.last_reset_date,  # type: ignore[attr-defined]
    )


class AllowanceRepository:
    async def get_for_update(
        self, db: AsyncSession, user_id: str
    ) -> TokenAllowance | None:
        row = (await db.execute(_GET_FOR_UPDATE_SQL, {"user_id": user_id})).fetchone()
        return _row_to_allowance(row) if row else None

    async def insert_if_absent(
        self, db: AsyncSession, user_id: str, tokens_remaining: int, today: date
    ) -> TokenAllowance | None:
        result = await db.execute(
            _INSERT_IF_ABSENT_SQL,
            {"user_id": user_id, "tokens_remaining": tokens_remaining, "today": today},
        )
        row = result.fetchone()
        return _row_to_allowance(row) if row else None

    async def update(
        self, db: AsyncSession, user_id: str, tokens_remaining: int, last_reset_date: date
    ) -> TokenAllowance:
        result = await db.execute(
            _UPDATE_SQL,
            {
                "user_id": user_id,
                "tokens_remaining": tokens_remaining,
                "last_reset_date": last_reset_date,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Allowance row vanished for user {user_id}")
        return _row_to_allowance(row)
