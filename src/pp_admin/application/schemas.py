"""Pydantic request/response schemas for the admin API."""

from dataclasses import asdict
from typing import Any

from pydantic import BaseModel, Field

from src.pp_admin.domain.models import AuditLogEntry, PlatformStats
from src.pp_odds.application.sync import OddsSyncStatus
from src.pp_odds.domain.models import OddsSyncResult
from src.pp_settlement.application.worker import SettlementStatus


class CreditTokensRequest(BaseModel):
    amount: int = Field(..., gt=0)
    description: str | None = Field(None, max_length=255)


class CreditTokensResponse(BaseModel):
    user_id: str
    amount: int
    new_balance: int
    transaction_id: int


class PlatformStatsResponse(BaseModel):
    total_users: int
    total_events: int
    open_events: int
    total_predictions: int
    pending_predictions: int
    total_redemptions: int
    pending_redemptions: int
    tokens_in_circulation: int
    points_in_circulation: int

    @classmethod
    def from_domain(cls, stats: PlatformStats) -> "PlatformStatsResponse":
        return cls(**asdict(stats))


class AuditLogResponse(BaseModel):
    id: str
    admin_id: str
    action: str
    target_type: str
    target_id: str
    details: dict[str, Any] | None
    created_at: str | None

    @classmethod
    def from_domain(cls, entry: AuditLogEntry) -> "AuditLogResponse":
        return cls(
            id=entry.id,
            admin_id=entry.admin_id,
            action=entry.action,
            target_type=entry.target_type,
            target_id=entry.target_id,
            details=entry.details,
            created_at=entry.created_at.isoformat() if entry.created_at else None,
        )


class AuditLogListResponse(BaseModel):
    items: list[AuditLogResponse]


class OddsSyncResultResponse(BaseModel):
    sports: int
    updated: int
    failed: int
    errors: list[str]

    @classmethod
    def from_domain(cls, result: OddsSyncResult) -> "OddsSyncResultResponse":
        return cls(
            sports=result.sports,
            updated=result.updated,
            failed=result.failed,
            errors=list(result.errors),
        )


class OddsSyncStatusResponse(BaseModel):
    last_run_at: str | None
    last_error: str | None
    last_result: OddsSyncResultResponse

    @classmethod
    def from_domain(cls, status: OddsSyncStatus) -> "OddsSyncStatusResponse":
        return cls(
            last_run_at=status.last_run_at.isoformat() if status.last_run_at else None,
            last_error=status.last_error,
            last_result=OddsSyncResultResponse.from_domain(status.last_result),
        )


class SettlementErrorItem(BaseModel):
    event_id: str
    error: str


class SettlementStatusResponse(BaseModel):
    is_running: bool
    last_run_at: str | None
    last_error: str | None
    settled_events: int
    skipped_events: int
    failed_events: int
    errors: list[SettlementErrorItem]

    @classmethod
    def from_domain(cls, status: SettlementStatus) -> "SettlementStatusResponse":
        return cls(
            is_running=status.is_running,
            last_run_at=status.last_run_at.isoformat() if status.last_run_at else None,
            last_error=status.last_error,
            settled_events=status.settled_events,
            skipped_events=status.skipped_events,
            failed_events=status.failed_events,
            errors=[SettlementErrorItem(event_id=e.event_id, error=e.error) for e in status.errors],
        )


class AutoLockResponse(BaseModel):
    locked: int
