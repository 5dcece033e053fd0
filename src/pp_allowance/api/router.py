"""GET /tokens/allowance — allowance status plus the token ledger balance."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_allowance.application.schemas import AllowanceResponse
from src.pp_allowance.application.service import TokenAllowanceService
from src.pp_common.database import get_db_session
from src.pp_common.response import ApiResponse, respond
from src.pp_gateway.auth.dependencies import get_current_user
from src.pp_gateway.user.db_models import UserModel
from src.pp_ledger.application.ledgers import token_ledger

router = APIRouter(prefix="/tokens", tags=["tokens"])

_service = TokenAllowanceService()


@router.get("/allowance")
async def get_allowance(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    status = await _service.get_status(db, current_user.id)
    balance = await token_ledger.get_balance(db, current_user.id)
    data = AllowanceResponse(
        allowance=status,
        balance=balance.cached,
        verified=balance.cached == balance.calculated,
    )
    return respond(request, data)
