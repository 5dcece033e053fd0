"""Admin application services: platform stats, balance audit, token credit, audit log."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_admin.domain.models import AuditLogEntry, PlatformStats
from src.pp_admin.infrastructure.persistence import AuditLogRepository, fetch_platform_stats
from src.pp_common.database import unit_of_work
from src.pp_common.enums import AdminAction, ReferenceType, TokenTransactionType
from src.pp_common.errors import InvalidInputError
from src.pp_common.id_generator import generate_id
from src.pp_ledger.application.ledgers import points_ledger, token_ledger
from src.pp_ledger.domain.engine import LedgerEngine
from src.pp_ledger.domain.models import BalanceCheck, LedgerEntryInput, LedgerResult

logger = logging.getLogger(__name__)

LEDGERS: dict[str, LedgerEngine] = {"tokens": token_ledger, "points": points_ledger}


class AuditLogService:
    """Best-effort audit trail: a failed write is logged, never raised.

    Called after the audited action has committed, on the same session.
    """

    def __init__(self, repo: AuditLogRepository | None = None) -> None:
        self._repo = repo or AuditLogRepository()

    async def record(
        self,
        db: AsyncSession,
        admin_id: str,
        action: AdminAction,
        target_type: str,
        target_id: str,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry | None:
        try:
            async with unit_of_work(db):
                return await self._repo.insert(
                    db, generate_id(), admin_id, action.value, target_type, target_id, details
                )
        except Exception:
            logger.exception(
                "Audit write failed: admin=%s action=%s target=%s/%s",
                admin_id, action.value, target_type, target_id,
            )
            return None

    async def list_entries(
        self,
        db: AsyncSession,
        action: str | None = None,
        target_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        if action is not None and action not in AdminAction.__members__:
            raise InvalidInputError(f"unknown audit action {action!r}")
        return await self._repo.list_entries(db, action, target_id, limit, offset)


class AdminService:
    async def get_stats(self, db: AsyncSession) -> PlatformStats:
        return await fetch_platform_stats(db)

    async def verify_balance(self, db: AsyncSession, currency: str, user_id: str) -> BalanceCheck:
        return await _ledger_for(currency).verify_balance(db, user_id)

    async def repair_balance(self, db: AsyncSession, currency: str, user_id: str) -> BalanceCheck:
        return await _ledger_for(currency).repair_balance(db, user_id)

    async def credit_tokens(
        self,
        db: AsyncSession,
        admin_id: str,
        user_id: str,
        amount: int,
        description: str | None = None,
    ) -> LedgerResult:
        result = await token_ledger.credit(
            db,
            LedgerEntryInput(
                user_id=user_id,
                amount=amount,
                tx_type=TokenTransactionType.ADMIN_CREDIT,
                reference_type=ReferenceType.ADMIN.value,
                reference_id=admin_id,
                description=description or "Admin credit",
            ),
        )
        logger.info("Admin %s credited %d tokens to user=%s", admin_id, amount, user_id)
        return result


def _ledger_for(currency: str) -> LedgerEngine:
    ledger = LEDGERS.get(currency)
    if ledger is None:
        raise InvalidInputError(f"currency must be one of {sorted(LEDGERS)}")
    return ledger
