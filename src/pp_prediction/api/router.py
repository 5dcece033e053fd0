"""pp_prediction REST endpoints (JWT required).

POST /predictions                              — place a prediction
GET  /predictions                              — own predictions, newest first
GET  /predictions/stats                        — own win/loss statistics
GET  /predictions/{prediction_id}              — detail (owner only)
GET  /predictions/{prediction_id}/cashout-value — live cashout quote
POST /predictions/{prediction_id}/cashout      — execute cashout
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.database import get_db_session
from src.pp_common.response import ApiResponse, respond
from src.pp_gateway.auth.dependencies import get_current_user
from src.pp_gateway.user.db_models import UserModel
from src.pp_prediction.application.schemas import (
    CashoutQuoteResponse,
    CashoutResponse,
    PlacePredictionRequest,
    PredictionListResponse,
    PredictionResponse,
    UserStatsResponse,
)
from src.pp_prediction.application.service import PredictionService

router = APIRouter(prefix="/predictions", tags=["predictions"])

_service = PredictionService()


@router.post("", status_code=201)
async def place_prediction(
    body: PlacePredictionRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    prediction = await _service.place(
        db, current_user.id, body.event_id, body.predicted_outcome, body.stake_amount
    )
    return respond(request, PredictionResponse.from_domain(prediction), "Prediction placed")


@router.get("")
async def list_predictions(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(None, description="PENDING | WON | LOST | REFUNDED | CASHED_OUT"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    page = await _service.list_by_user(db, current_user.id, status, cursor, limit)
    return respond(request, PredictionListResponse.from_page(page))


@router.get("/stats")
async def get_my_stats(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    stats = await _service.get_user_stats(db, current_user.id)
    return respond(request, UserStatsResponse.from_domain(stats))


@router.get("/{prediction_id}")
async def get_prediction(
    prediction_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    prediction = await _service.get_by_id(db, prediction_id, current_user.id)
    return respond(request, PredictionResponse.from_domain(prediction))


@router.get("/{prediction_id}/cashout-value")
async def get_cashout_value(
    prediction_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    quote = await _service.get_cashout_value(db, current_user.id, prediction_id)
    return respond(request, CashoutQuoteResponse.from_domain(quote))


@router.post("/{prediction_id}/cashout")
async def cashout_prediction(
    prediction_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.cashout(db, current_user.id, prediction_id)
    return respond(request, CashoutResponse.from_domain(result), "Cashed out")
