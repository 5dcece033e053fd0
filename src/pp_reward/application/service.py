"""RewardService — reward catalog and the points-for-reward redemption flow.

redeem() and cancel() each move points and stock in one transaction with the
reward (or redemption) row locked FOR UPDATE, so a limited reward can never be
over-claimed and a refund is never paid twice.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.database import unit_of_work
from src.pp_common.datetime_utils import utc_now
from src.pp_common.enums import PointsTransactionType, RedemptionStatus, ReferenceType
from src.pp_common.errors import (
    InvalidInputError,
    InvalidRewardError,
    RedemptionForbiddenError,
    RedemptionNotFoundError,
    RedemptionNotPendingError,
    RewardNotFoundError,
    RewardOutOfStockError,
    RewardUnavailableError,
)
from src.pp_common.id_generator import generate_id
from src.pp_common.pagination import decode_ts_cursor, encode_ts_cursor, split_page
from src.pp_ledger.application.ledgers import points_ledger
from src.pp_ledger.domain.engine import LedgerEngine
from src.pp_ledger.domain.models import LedgerEntryInput
from src.pp_reward.domain.models import (
    NewReward,
    Redemption,
    RedemptionPage,
    Reward,
    validate_reward_changes,
)
from src.pp_reward.domain.repository import RewardRepositoryProtocol
from src.pp_reward.infrastructure.persistence import RewardRepository

logger = logging.getLogger(__name__)


class RewardService:
    def __init__(
        self,
        repo: RewardRepositoryProtocol | None = None,
        points: LedgerEngine | None = None,
    ) -> None:
        self._repo: RewardRepositoryProtocol = repo or RewardRepository()
        self._points = points or points_ledger

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def create_reward(self, db: AsyncSession, data: NewReward) -> Reward:
        if not data.name.strip():
            raise InvalidRewardError("name is required")
        if data.points_cost <= 0:
            raise InvalidRewardError("points cost must be positive")
        if data.stock_limit is not None and data.stock_limit < 1:
            raise InvalidRewardError("stock limit must be at least 1")
        async with unit_of_work(db):
            reward = await self._repo.create_reward(db, generate_id(), data)
        logger.info("Reward created: id=%s name=%r cost=%d", reward.id, reward.name, reward.points_cost)
        return reward

    async def update_reward(
        self, db: AsyncSession, reward_id: str, changes: dict[str, Any]
    ) -> Reward:
        problems = validate_reward_changes(changes)
        if problems:
            raise InvalidRewardError("; ".join(problems))
        async with unit_of_work(db):
            current = await self._repo.get_reward_for_update(db, reward_id)
            if current is None:
                raise RewardNotFoundError(reward_id)
            new_limit = changes.get("stock_limit", current.stock_limit)
            if new_limit is not None and new_limit < current.stock_claimed:
                raise InvalidRewardError(
                    f"stock limit {new_limit} is below the {current.stock_claimed} already claimed"
                )
            reward = await self._repo.update_reward(db, reward_id, changes)
        logger.info("Reward updated: id=%s fields=%s", reward_id, sorted(changes))
        return reward

    async def get_reward(self, db: AsyncSession, reward_id: str) -> Reward:
        reward = await self._repo.get_reward(db, reward_id)
        if reward is None:
            raise RewardNotFoundError(reward_id)
        return reward

    async def list_rewards(
        self, db: AsyncSession, active_only: bool = True, limit: int = 50, offset: int = 0
    ) -> tuple[list[Reward], int]:
        rewards = await self._repo.list_rewards(db, active_only, limit, offset)
        total = await self._repo.count_rewards(db, active_only)
        return rewards, total

    # ------------------------------------------------------------------
    # Redemptions
    # ------------------------------------------------------------------

    async def redeem(self, db: AsyncSession, user_id: str, reward_id: str) -> Redemption:
        async with unit_of_work(db):
            reward = await self._repo.get_reward_for_update(db, reward_id)
            if reward is None:
                raise RewardNotFoundError(reward_id)
            if not reward.is_active:
                raise RewardUnavailableError(reward_id)
            if not reward.in_stock:
                raise RewardOutOfStockError(reward_id)

            redemption = await self._repo.create_redemption(
                db, generate_id(), user_id, reward_id, reward.points_cost
            )
            await self._points.debit(
                db,
                LedgerEntryInput(
                    user_id=user_id,
                    amount=reward.points_cost,
                    tx_type=PointsTransactionType.REDEMPTION,
                    reference_type=ReferenceType.REDEMPTION.value,
                    reference_id=redemption.id,
                    description=f"Redeemed: {reward.name}",
                ),
                join=True,
            )
            if reward.stock_limit is not None:
                await self._repo.adjust_stock_claimed(db, reward_id, 1)

        logger.info(
            "Reward redeemed: redemption=%s user=%s reward=%s cost=%d",
            redemption.id, user_id, reward_id, reward.points_cost,
        )
        return redemption

    async def get_redemption(
        self, db: AsyncSession, redemption_id: str, user_id: str | None = None
    ) -> Redemption:
        """``user_id`` restricts access to the owner; admins pass None."""
        redemption = await self._repo.get_redemption(db, redemption_id)
        if redemption is None:
            raise RedemptionNotFoundError(redemption_id)
        if user_id is not None and redemption.user_id != user_id:
            raise RedemptionForbiddenError()
        return redemption

    async def list_user_redemptions(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None = None,
        cursor: str | None = None,
        limit: int = 20,
    ) -> RedemptionPage:
        return await self._list(db, user_id, status, cursor, limit)

    async def list_redemptions(
        self,
        db: AsyncSession,
        status: str | None = None,
        cursor: str | None = None,
        limit: int = 50,
    ) -> RedemptionPage:
        return await self._list(db, None, status, cursor, limit)

    async def fulfil(
        self, db: AsyncSession, redemption_id: str, admin_id: str, note: str | None = None
    ) -> Redemption:
        async with unit_of_work(db):
            current = await self._lock_pending(db, redemption_id)
            redemption = await self._repo.close_redemption(
                db,
                current.id,
                RedemptionStatus.FULFILLED.value,
                admin_id,
                note,
                utc_now(),
            )
        logger.info("Redemption fulfilled: id=%s by=%s", redemption_id, admin_id)
        return redemption

    async def cancel(self, db: AsyncSession, redemption_id: str, admin_id: str) -> Redemption:
        async with unit_of_work(db):
            current = await self._lock_pending(db, redemption_id)
            # reward before balance, the same order as redeem()
            reward = await self._repo.get_reward_for_update(db, current.reward_id)
            await self._points.credit(
                db,
                LedgerEntryInput(
                    user_id=current.user_id,
                    amount=current.points_cost,
                    tx_type=PointsTransactionType.REDEMPTION_REFUND,
                    reference_type=ReferenceType.REDEMPTION.value,
                    reference_id=current.id,
                    description=f"Refund for cancelled redemption {current.id}",
                ),
                join=True,
            )
            if reward is not None and reward.stock_limit is not None and reward.stock_claimed > 0:
                await self._repo.adjust_stock_claimed(db, reward.id, -1)
            redemption = await self._repo.close_redemption(
                db,
                current.id,
                RedemptionStatus.CANCELLED.value,
                admin_id,
                "Cancelled and refunded",
                utc_now(),
            )
        logger.info(
            "Redemption cancelled: id=%s refunded=%d by=%s",
            redemption_id, current.points_cost, admin_id,
        )
        return redemption

    async def _lock_pending(self, db: AsyncSession, redemption_id: str) -> Redemption:
        redemption = await self._repo.get_redemption_for_update(db, redemption_id)
        if redemption is None:
            raise RedemptionNotFoundError(redemption_id)
        if redemption.status != RedemptionStatus.PENDING:
            raise RedemptionNotPendingError(redemption_id, redemption.status)
        return redemption

    async def _list(
        self,
        db: AsyncSession,
        user_id: str | None,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> RedemptionPage:
        if status is not None and status not in RedemptionStatus.__members__:
            raise InvalidInputError(f"unknown redemption status {status}")
        cursor_ts, cursor_id = decode_ts_cursor(cursor)
        rows = await self._repo.list_redemptions(
            db, user_id, status, cursor_ts, cursor_id, limit + 1
        )
        page, has_more = split_page(rows, limit)
        next_cursor = None
        if has_more and page and page[-1].created_at is not None:
            next_cursor = encode_ts_cursor(page[-1].created_at, page[-1].id)
        return RedemptionPage(items=page, next_cursor=next_cursor, has_more=has_more)
