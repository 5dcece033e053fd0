"""pp_reward REST endpoints (JWT required).

GET  /rewards                              — active catalog, cheapest first
GET  /rewards/redemptions                  — own redemptions, newest first
GET  /rewards/redemptions/{redemption_id}  — own redemption detail
GET  /rewards/{reward_id}                  — reward detail
POST /rewards/{reward_id}/redeem           — spend points on a reward
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.database import get_db_session
from src.pp_common.response import ApiResponse, respond
from src.pp_gateway.auth.dependencies import get_current_user
from src.pp_gateway.user.db_models import UserModel
from src.pp_reward.application.schemas import (
    RedemptionListResponse,
    RedemptionResponse,
    RewardListResponse,
    RewardResponse,
)
from src.pp_reward.application.service import RewardService

router = APIRouter(prefix="/rewards", tags=["rewards"])

_service = RewardService()


@router.get("")
async def list_rewards(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    rewards, total = await _service.list_rewards(db, True, limit, offset)
    data = RewardListResponse(items=[RewardResponse.from_domain(r) for r in rewards], total=total)
    return respond(request, data)


# Declared before /{reward_id} so "redemptions" is not read as a reward id
@router.get("/redemptions")
async def list_my_redemptions(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(None, description="PENDING | FULFILLED | CANCELLED"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    page = await _service.list_user_redemptions(db, current_user.id, status, cursor, limit)
    return respond(request, RedemptionListResponse.from_page(page))


@router.get("/redemptions/{redemption_id}")
async def get_my_redemption(
    redemption_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    redemption = await _service.get_redemption(db, redemption_id, current_user.id)
    return respond(request, RedemptionResponse.from_domain(redemption))


@router.get("/{reward_id}")
async def get_reward(
    reward_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    reward = await _service.get_reward(db, reward_id)
    return respond(request, RewardResponse.from_domain(reward))


@router.post("/{reward_id}/redeem", status_code=201)
async def redeem_reward(
    reward_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    redemption = await _service.redeem(db, current_user.id, reward_id)
    return respond(request, RedemptionResponse.from_domain(redemption), "Reward redeemed")
