"""Ledger REST API — balances and history for both currencies (JWT required).

GET /tokens/balance     GET /tokens/history
GET /points/balance     GET /points/history
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_common.database import get_db_session
from src.pp_common.response import ApiResponse, respond
from src.pp_gateway.auth.dependencies import get_current_user
from src.pp_gateway.user.db_models import UserModel
from src.pp_ledger.application.ledgers import points_ledger, token_ledger
from src.pp_ledger.application.schemas import BalanceResponse, LedgerHistoryResponse

tokens_router = APIRouter(prefix="/tokens", tags=["tokens"])
points_router = APIRouter(prefix="/points", tags=["points"])


@tokens_router.get("/balance")
async def get_token_balance(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    snapshot = await token_ledger.get_balance(db, current_user.id)
    return respond(request, BalanceResponse.from_snapshot(snapshot))


@tokens_router.get("/history")
async def get_token_history(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
    tx_type: list[str] | None = Query(None, description="Filter by TokenTransactionType"),
) -> ApiResponse:
    page = await token_ledger.get_history(db, current_user.id, cursor, limit, tx_type)
    return respond(request, LedgerHistoryResponse.from_page(page))


@points_router.get("/balance")
async def get_points_balance(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    snapshot = await points_ledger.get_balance(db, current_user.id)
    return respond(request, BalanceResponse.from_snapshot(snapshot))


@points_router.get("/history")
async def get_points_history(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
    tx_type: list[str] | None = Query(None, description="Filter by PointsTransactionType"),
) -> ApiResponse:
    page = await points_ledger.get_history(db, current_user.id, cursor, limit, tx_type)
    return respond(request, LedgerHistoryResponse.from_page(page))
