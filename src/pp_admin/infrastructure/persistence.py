"""Raw SQL for the admin context: audit log rows and platform counters."""

import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pp_admin.domain.models import AuditLogEntry, PlatformStats

_AUDIT_COLUMNS = "id, admin_id, action, target_type, target_id, details, created_at"

_INSERT_AUDIT_SQL = text(f"""
    INSERT INTO admin_audit_logs (id, admin_id, action, target_type, target_id, details)
    VALUES (:id, :admin_id, :action, :target_type, :target_id, CAST(:details AS JSONB))
    RETURNING {_AUDIT_COLUMNS}
""")

_LIST_AUDIT_SQL = text(f"""
    SELECT {_AUDIT_COLUMNS}
    FROM admin_audit_logs
    WHERE (CAST(:action AS TEXT) IS NULL OR action = :action)
      AND (CAST(:target_id AS TEXT) IS NULL OR target_id = :target_id)
    ORDER BY created_at DESC, id DESC
    LIMIT :limit OFFSET :offset
""")

_STATS_SQL = text("""
    SELECT
        (SELECT COUNT(*) FROM users)                                        AS total_users,
        (SELECT COUNT(*) FROM events)                                       AS total_events,
        (SELECT COUNT(*) FROM events WHERE status = 'OPEN')                 AS open_events,
        (SELECT COUNT(*) FROM predictions)                                  AS total_predictions,
        (SELECT COUNT(*) FROM predictions WHERE status = 'PENDING')         AS pending_predictions,
        (SELECT COUNT(*) FROM redemptions)                                  AS total_redemptions,
        (SELECT COUNT(*) FROM redemptions WHERE status = 'PENDING')         AS pending_redemptions,
        (SELECT COALESCE(SUM(token_balance), 0) FROM users)                 AS tokens_in_circulation,
        (SELECT COALESCE(SUM(points_balance), 0) FROM users)                AS points_in_circulation
""")


def _row_to_audit(row: Any) -> AuditLogEntry:
    details = row.details
    if isinstance(details, str):
        details = json.loads(details)
    return AuditLogEntry(
        id=row.id,
        admin_id=row.admin_id,
        action=row.action,
        target_type=row.target_type,
        target_id=row.target_id,
        details=details,
        created_at=row.created_at,
    )


class AuditLogRepository:
    async def insert(
        self,
        db: AsyncSession,
        entry_id: str,
        admin_id: str,
        action: str,
        target_type: str,
        target_id: str,
        details: dict[str, Any] | None,
    ) -> AuditLogEntry:
        result = await db.execute(
            _INSERT_AUDIT_SQL,
            {
                "id": entry_id,
                "admin_id": admin_id,
                "action": action,
                "target_type": target_type,
                "target_id": target_id,
                "details": json.dumps(details, default=str) if details is not None else None,
            },
        )
        return _row_to_audit(result.fetchone())

    async def list_entries(
        self,
        db: AsyncSession,
        action: str | None,
        target_id: str | None,
        limit: int,
        offset: int,
    ) -> list[AuditLogEntry]:
        result = await db.execute(
            _LIST_AUDIT_SQL,
            {"action": action, "target_id": target_id, "limit": limit, "offset": offset},
        )
        return [_row_to_audit(r) for r in result.fetchall()]


async def fetch_platform_stats(db: AsyncSession) -> PlatformStats:
    row = (await db.execute(_STATS_SQL)).fetchone()
    return PlatformStats(
        total_users=int(row.total_users),
        total_events=int(row.total_events),
        open_events=int(row.open_events),
        total_predictions=int(row.total_predictions),
        pending_predictions=int(row.pending_predictions),
        total_redemptions=int(row.total_redemptions),
        pending_redemptions=int(row.pending_redemptions),
        tokens_in_circulation=int(row.tokens_in_circulation),
        points_in_circulation=int(row.points_in_circulation),
    )
