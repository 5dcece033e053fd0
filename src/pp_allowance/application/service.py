"""TokenAllowanceService — lazy daily replenishment and stake consumption.

The allowance row is always read under ``FOR UPDATE`` before any computation,
so two stakes from the same user serialize on it. Every token movement goes
through the token ledger inside the same unit of work as the allowance update.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pp_allowance.application.schemas import AllowanceStatus
from src.pp_allowance.domain.models import ConsumeResult, TokenAllowance, compute_top_up
from src.pp_allowance.domain.repository import AllowanceRepositoryProtocol
from src.pp_allowance.infrastructure.persistence import AllowanceRepository
from src.pp_common.database import unit_of_work
from src.pp_common.datetime_utils import days_between, utc_today
from src.pp_common.enums import ReferenceType, TokenTransactionType
from src.pp_common.errors import InternalError
from src.pp_ledger.application.ledgers import token_ledger
from src.pp_ledger.domain.engine import LedgerEngine
from src.pp_ledger.domain.models import LedgerEntryInput

logger = logging.getLogger(__name__)


class TokenAllowanceService:
    def __init__(
        self,
        repo: AllowanceRepositoryProtocol | None = None,
        ledger: LedgerEngine | None = None,
        daily_grant: int | None = None,
        max_allowance: int | None = None,
    ) -> None:
        self._repo: AllowanceRepositoryProtocol = repo or AllowanceRepository()
        self._ledger = ledger or token_ledger
        self._daily_grant = settings.DAILY_ALLOWANCE_TOKENS if daily_grant is None else daily_grant
        self._max_allowance = (
            settings.MAX_ALLOWANCE_TOKENS if max_allowance is None else max_allowance
        )

    async def get_status(self, db: AsyncSession, user_id: str) -> AllowanceStatus:
        async with unit_of_work(db):
            record = await self._lock_or_create(db, user_id)
            record = await self._replenish(db, record)
        return AllowanceStatus.from_domain(record)

    async def consume_tokens(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        reference_id: str,
        *,
        join: bool = False,
    ) -> ConsumeResult:
        """Debit a stake and decrement the allowance counter in one unit of work.

        The counter is clamped at zero: a stake may draw on tokens held beyond
        the allowance (bonuses, refunds), which the ledger balance still covers.
        """
        async with unit_of_work(db, join=join):
            record = await self._lock_or_create(db, user_id)
            record = await self._replenish(db, record)
            result = await self._ledger.debit(
                db,
                LedgerEntryInput(
                    user_id=user_id,
                    amount=amount,
                    tx_type=TokenTransactionType.PREDICTION_STAKE,
                    reference_type=ReferenceType.PREDICTION.value,
                    reference_id=reference_id,
                    description=f"Stake on prediction {reference_id}",
                ),
                join=True,
            )
            record = await self._repo.update(
                db,
                user_id,
                tokens_remaining=max(0, record.tokens_remaining - amount),
                last_reset_date=record.last_reset_date,
            )
        return ConsumeResult(
            token_balance=result.new_balance,
            tokens_remaining=record.tokens_remaining,
            transaction_id=result.transaction_id,
        )

    # ------------------------------------------------------------------
    # Internals: callers hold an open unit of work
    # ------------------------------------------------------------------

    async def _lock_or_create(self, db: AsyncSession, user_id: str) -> TokenAllowance:
        record = await self._repo.get_for_update(db, user_id)
        if record is not None:
            return record

        first_grant = max(0, min(self._daily_grant, self._max_allowance))
        created = await self._repo.insert_if_absent(db, user_id, first_grant, utc_today())
        if created is None:
            # Lost the first-insert race; the winner has committed its row
            record = await self._repo.get_for_update(db, user_id)
            if record is None:
                raise InternalError(f"Allowance row missing after conflict for user {user_id}")
            return record

        if first_grant > 0:
            await self._ledger.credit(
                db,
                LedgerEntryInput(
                    user_id=user_id,
                    amount=first_grant,
                    tx_type=TokenTransactionType.DAILY_ALLOWANCE,
                    description="Initial daily allowance",
                ),
                join=True,
            )
        logger.info("Created token allowance for user=%s grant=%d", user_id, first_grant)
        return created

    async def _replenish(self, db: AsyncSession, record: TokenAllowance) -> TokenAllowance:
        today = utc_today()
        days = days_between(record.last_reset_date, today)
        if days < 1:
            return record

        top_up = compute_top_up(
            record.tokens_remaining, days, self._daily_grant, self._max_allowance
        )
        if top_up > 0:
            await self._ledger.credit(
                db,
                LedgerEntryInput(
                    user_id=record.user_id,
                    amount=top_up,
                    tx_type=TokenTransactionType.DAILY_ALLOWANCE,
                    description=f"Daily allowance ({days} day{'s' if days != 1 else ''})",
                ),
                join=True,
            )
        # The counter follows the allowance, not the ledger balance, which may
        # also hold bonus or refund tokens; it never passes max_allowance.
        return await self._repo.update(
            db,
            record.user_id,
            tokens_remaining=record.tokens_remaining + top_up,
            last_reset_date=today,
        )
