"""pp_event REST endpoints (JWT required).

GET /events                     — list, ascending by start time, cursor pagination
GET /events/{event_id}          — detail with prediction count
GET /events/{event_id}/stats    — per-outcome prediction counts and stakes
GET /events/{event_id}/odds     — live odds, falling back to the cached snapshot
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.database import get_db_session
from src.pp_common.response import ApiResponse, respond
from src.pp_event.application.schemas import EventListResponse, EventResponse
from src.pp_event.application.service import EventService
from src.pp_gateway.auth.dependencies import get_current_user
from src.pp_gateway.user.db_models import UserModel
from src.pp_odds.infrastructure.odds_api import OddsApiClient
from src.pp_prediction.application.service import PredictionService

router = APIRouter(prefix="/events", tags=["events"])

_service = EventService()
_predictions = PredictionService()
_provider = OddsApiClient()


@router.get("")
async def list_events(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: str | None = Query(None, description="OPEN | LOCKED | SETTLED | CANCELLED"),
    upcoming: bool = Query(False, description="Only OPEN events that have not started"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    page = await _service.list(db, status, upcoming, cursor, limit)
    return respond(request, EventListResponse.from_page(page))


@router.get("/{event_id}")
async def get_event(
    event_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    event = await _service.get_by_id(db, event_id)
    return respond(request, EventResponse.from_domain(event))


@router.get("/{event_id}/stats")
async def get_event_stats(
    event_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    stats = await _predictions.get_event_stats(db, event_id)
    return respond(request, stats)


@router.get("/{event_id}/odds")
async def get_event_odds(
    event_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    odds = await _service.get_odds(db, event_id, _provider)
    return respond(request, odds)
