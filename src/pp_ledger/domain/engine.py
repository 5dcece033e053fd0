"""Generic single-entry ledger engine.

One engine class, configured once per currency (tokens, points). Every balance
change goes through ``_post``:

  1. read the cached balance under ``SELECT ... FOR UPDATE``
  2. compute the new balance, refusing to go below zero
  3. insert the immutable entry carrying the balance snapshot
  4. write the new cached balance

all inside one unit of work. With ``join=True`` the caller's transaction is
reused, so several ledger postings plus unrelated writes (prediction rows,
redemption rows) commit or roll back together.
"""

import logging
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.database import unit_of_work
from src.pp_common.errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidTransactionTypeError,
    ReservedTransactionTypeError,
    UserNotFoundError,
)
from src.pp_common.pagination import cursor_decode, cursor_encode, split_page
from src.pp_ledger.domain.models import (
    BalanceCheck,
    BalanceSnapshot,
    LedgerEntryInput,
    LedgerPage,
    LedgerResult,
)
from src.pp_ledger.domain.repository import LedgerAdapterProtocol

logger = logging.getLogger(__name__)


class LedgerEngine:
    def __init__(
        self,
        name: str,
        adapter: LedgerAdapterProtocol,
        tx_types: type[Enum],
        reserved_types: frozenset[str] = frozenset(),
    ) -> None:
        self.name = name
        self._adapter = adapter
        self._allowed = frozenset(str(member.value) for member in tx_types)
        self._reserved = reserved_types

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def credit(
        self, db: AsyncSession, entry: LedgerEntryInput, *, join: bool = False
    ) -> LedgerResult:
        tx_type = self._validate(entry)
        return await self._post(db, entry, tx_type, entry.amount, join=join)

    async def debit(
        self, db: AsyncSession, entry: LedgerEntryInput, *, join: bool = False
    ) -> LedgerResult:
        tx_type = self._validate(entry)
        return await self._post(db, entry, tx_type, -entry.amount, join=join)

    def _validate(self, entry: LedgerEntryInput) -> str:
        if isinstance(entry.amount, bool) or not isinstance(entry.amount, int) or entry.amount <= 0:
            raise InvalidAmountError(entry.amount)
        tx_type = str(entry.tx_type.value if isinstance(entry.tx_type, Enum) else entry.tx_type)
        if tx_type in self._reserved:
            raise ReservedTransactionTypeError(tx_type)
        if tx_type not in self._allowed:
            raise InvalidTransactionTypeError(self.name, tx_type)
        return tx_type

    async def _post(
        self,
        db: AsyncSession,
        entry: LedgerEntryInput,
        tx_type: str,
        signed_amount: int,
        *,
        join: bool,
    ) -> LedgerResult:
        async with unit_of_work(db, join=join):
            current = await self._adapter.get_balance_for_update(db, entry.user_id)
            if current is None:
                raise UserNotFoundError(entry.user_id)

            new_balance = current + signed_amount
            if new_balance < 0:
                raise InsufficientBalanceError(abs(signed_amount), current)

            row = await self._adapter.insert_entry(
                db,
                user_id=entry.user_id,
                tx_type=tx_type,
                amount=signed_amount,
                balance_after=new_balance,
                reference_type=entry.reference_type,
                reference_id=entry.reference_id,
                description=entry.description,
            )
            await self._adapter.update_balance(db, entry.user_id, new_balance)

        logger.debug(
            "%s ledger %s %+d user=%s balance=%d",
            self.name, tx_type, signed_amount, entry.user_id, new_balance,
        )
        return LedgerResult(new_balance=new_balance, transaction_id=row.id)

    # ------------------------------------------------------------------
    # Reads and audit
    # ------------------------------------------------------------------

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceSnapshot:
        cached = await self._adapter.get_cached_balance(db, user_id)
        if cached is None:
            raise UserNotFoundError(user_id)
        calculated = await self._adapter.sum_entries(db, user_id)
        return BalanceSnapshot(cached=cached, calculated=calculated)

    async def verify_balance(self, db: AsyncSession, user_id: str) -> BalanceCheck:
        snapshot = await self.get_balance(db, user_id)
        return BalanceCheck(
            user_id=user_id, cached=snapshot.cached, calculated=snapshot.calculated
        )

    async def repair_balance(
        self, db: AsyncSession, user_id: str, *, join: bool = False
    ) -> BalanceCheck:
        """Force the cached balance back to the ledger sum. Ops use only."""
        async with unit_of_work(db, join=join):
            cached = await self._adapter.get_balance_for_update(db, user_id)
            if cached is None:
                raise UserNotFoundError(user_id)
            calculated = await self._adapter.sum_entries(db, user_id)
            if cached != calculated:
                logger.warning(
                    "Repairing %s balance for user=%s: cached=%d ledger=%d",
                    self.name, user_id, cached, calculated,
                )
                await self._adapter.update_balance(db, user_id, calculated)
        return BalanceCheck(user_id=user_id, cached=calculated, calculated=calculated)

    async def get_history(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None = None,
        limit: int = 20,
        tx_types: list[str] | None = None,
    ) -> LedgerPage:
        cursor_id = _cursor_id(cursor)
        type_filter = tx_types or None

        # Fetch limit+1 to detect has_more
        rows = await self._adapter.list_entries(
            db, user_id, cursor_id, limit + 1, type_filter
        )
        page, has_more = split_page(rows, limit)
        total = await self._adapter.count_entries(db, user_id, type_filter)
        next_cursor = cursor_encode({"id": page[-1].id}) if has_more and page else None
        return LedgerPage(items=page, next_cursor=next_cursor, has_more=has_more, total=total)


def _cursor_id(cursor: str | None) -> int | None:
    decoded = cursor_decode(cursor)
    if not decoded:
        return None
    try:
        return int(decoded["id"])
    except (KeyError, TypeError, ValueError):
        return None
