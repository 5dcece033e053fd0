"""Admin REST API (admin JWT required on every route).

Events:       POST /admin/events, POST /admin/events/{id}/lock|settle|cancel,
              POST /admin/events/auto-lock
Odds:         POST /admin/odds/sync, GET /admin/odds/sync/status
Rewards:      GET/POST /admin/rewards, PATCH /admin/rewards/{id}
Redemptions:  GET /admin/redemptions, POST /admin/redemptions/{id}/fulfil|cancel
Users:        GET /admin/users/{id}/balances/{currency}/verify,
              POST /admin/users/{id}/balances/{currency}/repair,
              POST /admin/users/{id}/tokens/credit
Ops:          GET /admin/stats, POST /admin/settlement/run,
              GET /admin/settlement/status, GET /admin/audit-logs

Mutating routes write an audit entry after the action commits.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_admin.application.schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    AutoLockResponse,
    CreditTokensRequest,
    CreditTokensResponse,
    OddsSyncResultResponse,
    OddsSyncStatusResponse,
    PlatformStatsResponse,
    SettlementStatusResponse,
)
from src.pp_admin.application.service import AdminService, AuditLogService
from src.pp_common.database import get_db_session
from src.pp_common.enums import AdminAction
from src.pp_common.response import ApiResponse, respond
from src.pp_event.application.schemas import (
    CancellationSummaryResponse,
    CreateEventRequest,
    EventResponse,
    SettleEventRequest,
    SettlementSummaryResponse,
)
from src.pp_gateway.auth.dependencies import require_admin
from src.pp_gateway.user.db_models import UserModel
from src.pp_ledger.application.schemas import BalanceCheckResponse
from src.pp_reward.application.schemas import (
    CreateRewardRequest,
    FulfilRedemptionRequest,
    RedemptionListResponse,
    RedemptionResponse,
    RewardListResponse,
    RewardResponse,
    UpdateRewardRequest,
)
from src.pp_reward.application.service import RewardService
from src.pp_settlement.application import runtime

router = APIRouter(prefix="/admin", tags=["admin"])

_admin = AdminService()
_audit = AuditLogService()
_rewards = RewardService()

AdminUser = Annotated[UserModel, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@router.post("/events", status_code=201)
async def create_event(
    body: CreateEventRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    event = await runtime.event_service.create(db, body.to_domain(), admin.id)
    await _audit.record(
        db, admin.id, AdminAction.CREATE_EVENT, "EVENT", event.id,
        {"title": event.title, "outcomes": event.outcomes},
    )
    return respond(request, EventResponse.from_domain(event), "Event created")


@router.post("/events/auto-lock")
async def auto_lock_events(request: Request, admin: AdminUser, db: DbSession) -> ApiResponse:
    locked = await runtime.event_service.auto_lock_started_events(db)
    return respond(request, AutoLockResponse(locked=locked))


@router.post("/events/{event_id}/lock")
async def lock_event(event_id: str, request: Request, admin: AdminUser, db: DbSession) -> ApiResponse:
    event = await runtime.event_service.lock(db, event_id)
    await _audit.record(db, admin.id, AdminAction.LOCK_EVENT, "EVENT", event_id)
    return respond(request, EventResponse.from_domain(event), "Event locked")


@router.post("/events/{event_id}/settle")
async def settle_event(
    event_id: str, body: SettleEventRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    summary = await runtime.event_service.settle(db, event_id, body.final_outcome, admin.id)
    await _audit.record(
        db, admin.id, AdminAction.SETTLE_EVENT, "EVENT", event_id,
        {
            "final_outcome": summary.final_outcome,
            "winners": summary.winners,
            "total_payout": summary.total_payout,
        },
    )
    return respond(request, SettlementSummaryResponse.from_domain(summary), "Event settled")


@router.post("/events/{event_id}/cancel")
async def cancel_event(event_id: str, request: Request, admin: AdminUser, db: DbSession) -> ApiResponse:
    summary = await runtime.event_service.cancel(db, event_id, admin.id)
    await _audit.record(
        db, admin.id, AdminAction.CANCEL_EVENT, "EVENT", event_id,
        {"refunded": summary.refunded, "total_refunded": summary.total_refunded},
    )
    return respond(request, CancellationSummaryResponse.from_domain(summary), "Event cancelled")


# ---------------------------------------------------------------------------
# Odds sync
# ---------------------------------------------------------------------------

@router.post("/odds/sync")
async def sync_odds(request: Request, admin: AdminUser, db: DbSession) -> ApiResponse:
    result = await runtime.odds_sync.run_once(db)
    return respond(request, OddsSyncResultResponse.from_domain(result))


@router.get("/odds/sync/status")
async def odds_sync_status(request: Request, admin: AdminUser) -> ApiResponse:
    return respond(request, OddsSyncStatusResponse.from_domain(runtime.odds_sync.get_status()))


# ---------------------------------------------------------------------------
# Rewards and redemptions
# ---------------------------------------------------------------------------

@router.get("/rewards")
async def list_all_rewards(
    request: Request,
    admin: AdminUser,
    db: DbSession,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    rewards, total = await _rewards.list_rewards(db, False, limit, offset)
    data = RewardListResponse(items=[RewardResponse.from_domain(r) for r in rewards], total=total)
    return respond(request, data)


@router.post("/rewards", status_code=201)
async def create_reward(
    body: CreateRewardRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    reward = await _rewards.create_reward(db, body.to_domain())
    await _audit.record(
        db, admin.id, AdminAction.CREATE_REWARD, "REWARD", reward.id,
        {"name": reward.name, "points_cost": reward.points_cost},
    )
    return respond(request, RewardResponse.from_domain(reward), "Reward created")


@router.patch("/rewards/{reward_id}")
async def update_reward(
    reward_id: str, body: UpdateRewardRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    changes = body.changes()
    reward = await _rewards.update_reward(db, reward_id, changes)
    await _audit.record(db, admin.id, AdminAction.UPDATE_REWARD, "REWARD", reward_id, changes)
    return respond(request, RewardResponse.from_domain(reward), "Reward updated")


@router.get("/redemptions")
async def list_redemptions(
    request: Request,
    admin: AdminUser,
    db: DbSession,
    status: str | None = Query(None, description="PENDING | FULFILLED | CANCELLED"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(50, ge=1, le=100),
) -> ApiResponse:
    page = await _rewards.list_redemptions(db, status, cursor, limit)
    return respond(request, RedemptionListResponse.from_page(page))


@router.post("/redemptions/{redemption_id}/fulfil")
async def fulfil_redemption(
    redemption_id: str,
    body: FulfilRedemptionRequest,
    request: Request,
    admin: AdminUser,
    db: DbSession,
) -> ApiResponse:
    redemption = await _rewards.fulfil(db, redemption_id, admin.id, body.fulfilment_note)
    await _audit.record(
        db, admin.id, AdminAction.FULFIL_REDEMPTION, "REDEMPTION", redemption_id,
        {"note": body.fulfilment_note},
    )
    return respond(request, RedemptionResponse.from_domain(redemption), "Redemption fulfilled")


@router.post("/redemptions/{redemption_id}/cancel")
async def cancel_redemption(
    redemption_id: str, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    redemption = await _rewards.cancel(db, redemption_id, admin.id)
    await _audit.record(
        db, admin.id, AdminAction.CANCEL_REDEMPTION, "REDEMPTION", redemption_id,
        {"refunded_points": redemption.points_cost},
    )
    return respond(request, RedemptionResponse.from_domain(redemption), "Redemption cancelled")


# ---------------------------------------------------------------------------
# Users and balances
# ---------------------------------------------------------------------------

@router.get("/users/{user_id}/balances/{currency}/verify")
async def verify_balance(
    user_id: str, currency: str, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    check = await _admin.verify_balance(db, currency, user_id)
    return respond(request, BalanceCheckResponse.from_domain(check))


@router.post("/users/{user_id}/balances/{currency}/repair")
async def repair_balance(
    user_id: str, currency: str, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    before = await _admin.verify_balance(db, currency, user_id)
    check = await _admin.repair_balance(db, currency, user_id)
    await _audit.record(
        db, admin.id, AdminAction.REPAIR_BALANCE, "USER", user_id,
        {"currency": currency, "cached_before": before.cached, "calculated": check.calculated},
    )
    return respond(request, BalanceCheckResponse.from_domain(check), "Balance repaired")


@router.post("/users/{user_id}/tokens/credit")
async def credit_tokens(
    user_id: str, body: CreditTokensRequest, request: Request, admin: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _admin.credit_tokens(db, admin.id, user_id, body.amount, body.description)
    await _audit.record(
        db, admin.id, AdminAction.CREDIT_TOKENS, "USER", user_id,
        {"amount": body.amount, "transaction_id": result.transaction_id},
    )
    data = CreditTokensResponse(
        user_id=user_id,
        amount=body.amount,
        new_balance=result.new_balance,
        transaction_id=result.transaction_id,
    )
    return respond(request, data, "Tokens credited")


# ---------------------------------------------------------------------------
# Ops
# ---------------------------------------------------------------------------

@router.get("/stats")
async def platform_stats(request: Request, admin: AdminUser, db: DbSession) -> ApiResponse:
    stats = await _admin.get_stats(db)
    return respond(request, PlatformStatsResponse.from_domain(stats))


@router.post("/settlement/run")
async def run_settlement(request: Request, admin: AdminUser) -> ApiResponse:
    status = await runtime.settlement_worker.run_once()
    return respond(request, SettlementStatusResponse.from_domain(status))


@router.get("/settlement/status")
async def settlement_status(request: Request, admin: AdminUser) -> ApiResponse:
    status = runtime.settlement_worker.get_status()
    return respond(request, SettlementStatusResponse.from_domain(status))


@router.get("/audit-logs")
async def list_audit_logs(
    request: Request,
    admin: AdminUser,
    db: DbSession,
    action: str | None = Query(None, description="AdminAction value"),
    target_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    entries = await _audit.list_entries(db, action, target_id, limit, offset)
    data = AuditLogListResponse(items=[AuditLogResponse.from_domain(e) for e in entries])
    return respond(request, data)
