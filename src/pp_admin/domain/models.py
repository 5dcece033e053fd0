"""Domain models for pp_admin — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class AuditLogEntry:
    id: str
    admin_id: str
    action: str                     # AdminAction value
    target_type: str                # EVENT | REWARD | REDEMPTION | USER
    target_id: str
    details: dict[str, Any] | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class PlatformStats:
    total_users: int
    total_events: int
    open_events: int
    total_predictions: int
    pending_predictions: int
    total_redemptions: int
    pending_redemptions: int
    tokens_in_circulation: int
    points_in_circulation: int
