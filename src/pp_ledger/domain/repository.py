"""Ledger adapter Protocol — the storage seam the generic engine is written against.

One implementation per currency configuration (see infrastructure/persistence.py);
unit tests inject an in-memory fake that conforms to this Protocol.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_ledger.domain.models import LedgerEntry


class LedgerAdapterProtocol(Protocol):
    async def get_balance_for_update(
        self, db: AsyncSession, user_id: str
    ) -> int | None:
        """Read the cached balance under an exclusive row lock. None = no such user."""
        ...

    async def update_balance(
        self, db: AsyncSession, user_id: str, new_balance: int
    ) -> None: ...

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
    ) -> LedgerEntry: ...

    async def get_cached_balance(
        self, db: AsyncSession, user_id: str
    ) -> int | None: ...

    async def sum_entries(self, db: AsyncSession, user_id: str) -> int: ...

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        tx_types: list[str] | None,
    ) -> list[LedgerEntry]: ...

    async def count_entries(
        self, db: AsyncSession, user_id: str, tx_types: list[str] | None
    ) -> int: ...
