"""Domain models for pp_reward — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class Reward:
    id: str
    name: str
    points_cost: int
    is_active: bool = True
    description: str | None = None
    stock_limit: int | None = None      # None = unlimited
    stock_claimed: int = 0
    image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def in_stock(self) -> bool:
        return self.stock_limit is None or self.stock_claimed < self.stock_limit

    @property
    def stock_remaining(self) -> int | None:
        if self.stock_limit is None:
            return None
        return max(0, self.stock_limit - self.stock_claimed)


@dataclass
class NewReward:
    name: str
    points_cost: int
    description: str | None = None
    stock_limit: int | None = None
    image_url: str | None = None


@dataclass
class Redemption:
    id: str
    user_id: str
    reward_id: str
    points_cost: int            # cost captured at redemption time
    status: str                 # RedemptionStatus value
    fulfilled_by: str | None = None
    fulfilled_at: datetime | None = None
    fulfilment_note: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    reward_name: str | None = None


@dataclass
class RedemptionPage:
    items: list[Redemption]
    next_cursor: str | None
    has_more: bool


# Columns an admin may change on an existing reward
REWARD_UPDATABLE_FIELDS = frozenset(
    {"name", "description", "points_cost", "stock_limit", "image_url", "is_active"}
)


def validate_reward_changes(changes: dict[str, Any]) -> list[str]:
    """Return a list of problems with a partial reward update (empty when valid)."""
    problems: list[str] = []
    unknown = set(changes) - REWARD_UPDATABLE_FIELDS
    if unknown:
        problems.append(f"unknown field(s): {', '.join(sorted(unknown))}")
    if "name" in changes and not (changes["name"] or "").strip():
        problems.append("name must not be empty")
    if "points_cost" in changes and (changes["points_cost"] is None or changes["points_cost"] <= 0):
        problems.append("points cost must be positive")
    if "stock_limit" in changes and changes["stock_limit"] is not None and changes["stock_limit"] < 1:
        problems.append("stock limit must be at least 1")
    if "is_active" in changes and changes["is_active"] is None:
        problems.append("is_active must be true or false")
    return problems
