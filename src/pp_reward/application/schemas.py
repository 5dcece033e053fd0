"""Pydantic request/response schemas for pp_reward API."""

from datetime import datetime

from pydantic import BaseModel, Field, HttpUrl

from src.pp_reward.domain.models import NewReward, Redemption, RedemptionPage, Reward


class CreateRewardRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    points_cost: int = Field(..., gt=0)
    stock_limit: int | None = Field(None, ge=1)
    image_url: HttpUrl | None = None

    def to_domain(self) -> NewReward:
        return NewReward(
            name=self.name,
            description=self.description,
            points_cost=self.points_cost,
            stock_limit=self.stock_limit,
            image_url=str(self.image_url) if self.image_url else None,
        )


class UpdateRewardRequest(BaseModel):
    """Partial update: only fields present in the body are changed.

    ``stock_limit`` and ``image_url`` accept null to clear them.
    """

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    points_cost: int | None = Field(None, gt=0)
    stock_limit: int | None = Field(None, ge=1)
    image_url: HttpUrl | None = None
    is_active: bool | None = None

    def changes(self) -> dict[str, object]:
        data = self.model_dump(exclude_unset=True)
        if data.get("image_url") is not None:
            data["image_url"] = str(data["image_url"])
        return data


class FulfilRedemptionRequest(BaseModel):
    fulfilment_note: str | None = Field(None, max_length=1000)


class RewardResponse(BaseModel):
    id: str
    name: str
    description: str | None
    points_cost: int
    stock_limit: int | None
    stock_claimed: int
    stock_remaining: int | None
    image_url: str | None
    is_active: bool
    created_at: datetime | None

    @classmethod
    def from_domain(cls, r: Reward) -> "RewardResponse":
        return cls(
            id=r.id,
            name=r.name,
            description=r.description,
            points_cost=r.points_cost,
            stock_limit=r.stock_limit,
            stock_claimed=r.stock_claimed,
            stock_remaining=r.stock_remaining,
            image_url=r.image_url,
            is_active=r.is_active,
            created_at=r.created_at,
        )


class RewardListResponse(BaseModel):
    items: list[RewardResponse]
    total: int


class RedemptionResponse(BaseModel):
    id: str
    user_id: str
    reward_id: str
    reward_name: str | None
    points_cost: int
    status: str
    fulfilled_by: str | None
    fulfilled_at: datetime | None
    fulfilment_note: str | None
    created_at: datetime | None

    @classmethod
    def from_domain(cls, r: Redemption) -> "RedemptionResponse":
        return cls(
            id=r.id,
            user_id=r.user_id,
            reward_id=r.reward_id,
            reward_name=r.reward_name,
            points_cost=r.points_cost,
            status=r.status,
            fulfilled_by=r.fulfilled_by,
            fulfilled_at=r.fulfilled_at,
            fulfilment_note=r.fulfilment_note,
            created_at=r.created_at,
        )


class RedemptionListResponse(BaseModel):
    items: list[RedemptionResponse]
    next_cursor: str | None
    has_more: bool

    @classmethod
    def from_page(cls, page: RedemptionPage) -> "RedemptionListResponse":
        return cls(
            items=[RedemptionResponse.from_domain(r) for r in page.items],
            next_cursor=page.next_cursor,
            has_more=page.has_more,
        )
