from datetime import date
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_allowance.domain.models import TokenAllowance


class AllowanceRepositoryProtocol(Protocol):
    async def get_for_update(
        self, db: AsyncSession, user_id: str
    ) -> TokenAllowance | None: ...

    async def insert_if_absent(
        self, db: AsyncSession, user_id: str, tokens_remaining: int, today: date
    ) -> TokenAllowance | None:
        """INSERT ... ON CONFLICT DO NOTHING. None when another transaction won the race."""
        ...

    async def update(
        self, db: AsyncSession, user_id: str, tokens_remaining: int, last_reset_date: date
    ) -> TokenAllowance: ...
