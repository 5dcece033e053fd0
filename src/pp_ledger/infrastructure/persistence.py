"""SqlLedgerAdapter — PostgreSQL implementation of LedgerAdapterProtocol.

One instance per currency: the balance column on ``users`` and the entry table
are fixed at construction (never user input), so the SQL is rendered once.

Transaction ownership: the CALLER (LedgerEngine via unit_of_work) commits or
rolls back. ``get_balance_for_update`` takes a row lock that is held until then.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.errors import InternalError
from src.pp_ledger.domain.models import LedgerEntry

_ENTRY_COLUMNS = """id, user_id, tx_type, amount, balance_after,
                  reference_type, reference_id, description, created_at"""


def _row_to_entry(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        tx_type=row.tx_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class SqlLedgerAdapter:
    def __init__(self, balance_column: str, entry_table: str) -> None:
        self.balance_column = balance_column
        self.entry_table = entry_table

        self._lock_balance_sql = text(f"""
            SELECT {balance_column} AS balance
            FROM users
            WHERE id = :user_id
            FOR UPDATE
        """)
        self._get_balance_sql = text(f"""
            SELECT {balance_column} AS balance FROM users WHERE id = :user_id
        """)
        self._update_balance_sql = text(f"""
            UPDATE users
            SET {balance_column} = :balance,
                updated_at = NOW()
            WHERE id = :user_id
        """)
        self._insert_entry_sql = text(f"""
            INSERT INTO {entry_table}
                (user_id, tx_type, amount, balance_after,
                 reference_type, reference_id, description)
            VALUES
                (:user_id, :tx_type, :amount, :balance_after,
                 :reference_type, :reference_id, :description)
            RETURNING {_ENTRY_COLUMNS}
        """)
        self._sum_entries_sql = text(f"""
            SELECT COALESCE(SUM(amount), 0) AS total
            FROM {entry_table}
            WHERE user_id = :user_id
        """)
        # asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL
        self._list_entries_sql = text(f"""
            SELECT {_ENTRY_COLUMNS}
            FROM {entry_table}
            WHERE user_id = :user_id
              AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
              AND (CAST(:tx_types AS TEXT[]) IS NULL OR tx_type = ANY(CAST(:tx_types AS TEXT[])))
            ORDER BY id DESC
            LIMIT :limit
        """)
        self._count_entries_sql = text(f"""
            SELECT COUNT(*) AS total
            FROM {entry_table}
            WHERE user_id = :user_id
              AND (CAST(:tx_types AS TEXT[]) IS NULL OR tx_type = ANY(CAST(:tx_types AS TEXT[])))
        """)

    async def get_balance_for_update(
        self, db: AsyncSession, user_id: str
    ) -> int | None:
        row = (await db.execute(self._lock_balance_sql, {"user_id": user_id})).fetchone()
        return int(row.balance) if row else None

    async def update_balance(
        self, db: AsyncSession, user_id: str, new_balance: int
    ) -> None:
        await db.execute(
            self._update_balance_sql, {"user_id": user_id, "balance": new_balance}
        )

    async def insert_entry(
        self,
        db: AsyncSession,
        user_id: str,
        tx_type: str,
        amount: int,
        balance_after: int,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> LedgerEntry:
        result = await db.execute(
            self._insert_entry_sql,
            {
                "user_id": user_id,
                "tx_type": tx_type,
                "amount": amount,
                "balance_after": balance_after,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError(f"{self.entry_table} insert returned no rows")
        return _row_to_entry(row)

    async def get_cached_balance(
        self, db: AsyncSession, user_id: str
    ) -> int | None:
        row = (await db.execute(self._get_balance_sql, {"user_id": user_id})).fetchone()
        return int(row.balance) if row else None

    async def sum_entries(self, db: AsyncSession, user_id: str) -> int:
        row = (await db.execute(self._sum_entries_sql, {"user_id": user_id})).fetchone()
        return int(row.total) if row else 0

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        tx_types: list[str] | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            self._list_entries_sql,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "tx_types": tx_types,
                "limit": limit,
            },
        )
        return [_row_to_entry(row) for row in result.fetchall()]

    async def count_entries(
        self, db: AsyncSession, user_id: str, tx_types: list[str] | None
    ) -> int:
        row = (
            await db.execute(
                self._count_entries_sql, {"user_id": user_id, "tx_types": tx_types}
            )
        ).fetchone()
        return int(row.total) if row else 0
