from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_reward.domain.models import NewReward, Redemption, Reward


class RewardRepositoryProtocol(Protocol):
    # rewards
    async def create_reward(self, db: AsyncSession, reward_id: str, data: NewReward) -> Reward: ...

    async def get_reward(self, db: AsyncSession, reward_id: str) -> Reward | None: ...

    async def get_reward_for_update(
        self, db: AsyncSession, reward_id: str
    ) -> Reward | None: ...

    async def update_reward(
        self, db: AsyncSession, reward_id: str, changes: dict[str, Any]
    ) -> Reward: ...

    async def list_rewards(
        self, db: AsyncSession, active_only: bool, limit: int, offset: int
    ) -> list[Reward]: ...

    async def count_rewards(self, db: AsyncSession, active_only: bool) -> int: ...

    async def adjust_stock_claimed(self, db: AsyncSession, reward_id: str, delta: int) -> None: ...

    # redemptions
    async def create_redemption(
        self,
        db: AsyncSession,
        redemption_id: str,
        user_id: str,
        reward_id: str,
        points_cost: int,
    ) -> Redemption: ...

    async def get_redemption(
        self, db: AsyncSession, redemption_id: str
    ) -> Redemption | None: ...

    async def get_redemption_for_update(
        self, db: AsyncSession, redemption_id: str
    ) -> Redemption | None: ...

    async def list_redemptions(
        self,
        db: AsyncSession,
        user_id: str | None,
        status: str | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Redemption]:
        """Newest first; ``user_id=None`` lists every user's redemptions."""
        ...

    async def close_redemption(
        self,
        db: AsyncSession,
        redemption_id: str,
        status: str,
        closed_by: str,
        note: str | None,
        closed_at: datetime,
    ) -> Redemption: ...
