"""Unit tests for admin services and a few admin routes (auth and DB overridden)."""

from collections.abc import AsyncIterator, Iterator
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from src.main import app
from src.pp_admin.api import router as admin_router_module
from src.pp_admin.application.schemas import PlatformStatsResponse
from src.pp_admin.application.service import AdminService, AuditLogService
from src.pp_admin.domain.models import AuditLogEntry, PlatformStats
from src.pp_common.database import get_db_session
from src.pp_common.enums import AdminAction, ReferenceType, TokenTransactionType
from src.pp_common.errors import InvalidInputError
from src.pp_gateway.auth.dependencies import require_admin
from src.pp_gateway.user.db_models import UserModel
from src.pp_ledger.domain.models import BalanceCheck, LedgerResult
from src.pp_settlement.application.worker import SettlementStatus


class TestAuditLogService:
    async def test_record_commits_entry(self, mock_db: AsyncMock) -> None:
        repo = AsyncMock()
        repo.insert.return_value = AuditLogEntry(
            id="1", admin_id="adm", action="LOCK_EVENT", target_type="EVENT", target_id="e1"
        )

        entry = await AuditLogService(repo).record(
            mock_db, "adm", AdminAction.LOCK_EVENT, "EVENT", "e1", {"k": 1}
        )

        assert entry is not None
        args = repo.insert.await_args.args
        assert args[2:] == ("adm", "LOCK_EVENT", "EVENT", "e1", {"k": 1})
        mock_db.commit.assert_awaited_once()

    async def test_failed_write_is_logged_not_raised(
        self, mock_db: AsyncMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        repo = AsyncMock()
        repo.insert.side_effect = RuntimeError("audit table missing")

        entry = await AuditLogService(repo).record(
            mock_db, "adm", AdminAction.SETTLE_EVENT, "EVENT", "e1"
        )

        assert entry is None
        mock_db.rollback.assert_awaited_once()
        assert "Audit write failed" in caplog.text

    async def test_list_rejects_unknown_action(self, mock_db: AsyncMock) -> None:
        with pytest.raises(InvalidInputError):
            await AuditLogService(AsyncMock()).list_entries(mock_db, action="DROP_TABLE")

    async def test_list_passes_filters(self, mock_db: AsyncMock) -> None:
        repo = AsyncMock()
        repo.list_entries.return_value = []
        await AuditLogService(repo).list_entries(mock_db, "CREDIT_TOKENS", "u1", 10, 20)
        repo.list_entries.assert_awaited_once_with(mock_db, "CREDIT_TOKENS", "u1", 10, 20)


class TestAdminService:
    async def test_unknown_currency(self, mock_db: AsyncMock) -> None:
        with pytest.raises(InvalidInputError):
            await AdminService().verify_balance(mock_db, "dollars", "u1")

    async def test_verify_routes_to_ledger(self, mock_db: AsyncMock) -> None:
        check = BalanceCheck(user_id="u1", cached=5, calculated=5)
        with patch("src.pp_admin.application.service.LEDGERS") as ledgers:
            ledgers.get.return_value.verify_balance = AsyncMock(return_value=check)
            result = await AdminService().verify_balance(mock_db, "points", "u1")
        ledgers.get.assert_called_once_with("points")
        assert result is check

    async def test_credit_tokens_is_admin_credit(self, mock_db: AsyncMock) -> None:
        with patch("src.pp_admin.application.service.token_ledger") as ledger:
            ledger.credit = AsyncMock(return_value=LedgerResult(new_balance=30, transaction_id=9))
            result = await AdminService().credit_tokens(mock_db, "adm", "u1", 20, None)

        entry = ledger.credit.await_args.args[1]
        assert entry.tx_type == TokenTransactionType.ADMIN_CREDIT
        assert entry.reference_type == ReferenceType.ADMIN.value
        assert entry.reference_id == "adm"
        assert entry.description == "Admin credit"
        assert result.new_balance == 30

    def test_stats_response(self) -> None:
        stats = PlatformStats(10, 4, 2, 30, 5, 3, 1, 900, 120)
        resp = PlatformStatsResponse.from_domain(stats)
        assert resp.total_users == 10
        assert resp.points_in_circulation == 120


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@pytest.fixture
def admin_overrides(mock_db: AsyncMock) -> Iterator[None]:
    admin = UserModel(
        id="adm", username="root", email="root@example.com", password_hash="x",
        is_active=True, is_admin=True,
    )

    async def _db() -> AsyncIterator[AsyncMock]:
        yield mock_db

    app.dependency_overrides[require_admin] = lambda: admin
    app.dependency_overrides[get_db_session] = _db
    yield
    app.dependency_overrides.clear()


class TestAdminRoutes:
    async def test_settlement_status(self, client: AsyncClient, admin_overrides: None) -> None:
        status = SettlementStatus(
            last_run_at=datetime(2026, 1, 1, tzinfo=UTC), settled_events=2, skipped_events=1
        )
        with patch.object(admin_router_module.runtime, "settlement_worker") as worker:
            worker.get_status.return_value = status
            resp = await client.get("/api/v1/admin/settlement/status")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["settled_events"] == 2
        assert data["last_run_at"] == "2026-01-01T00:00:00+00:00"

    async def test_credit_tokens_writes_audit(
        self, client: AsyncClient, admin_overrides: None
    ) -> None:
        with (
            patch.object(admin_router_module, "_admin") as admin_service,
            patch.object(admin_router_module, "_audit") as audit,
        ):
            admin_service.credit_tokens = AsyncMock(
                return_value=LedgerResult(new_balance=50, transaction_id=7)
            )
            audit.record = AsyncMock()
            resp = await client.post(
                "/api/v1/admin/users/u1/tokens/credit", json={"amount": 25}
            )

        assert resp.status_code == 200
        assert resp.json()["data"] == {
            "user_id": "u1", "amount": 25, "new_balance": 50, "transaction_id": 7,
        }
        action = audit.record.await_args.args[2]
        assert action is AdminAction.CREDIT_TOKENS

    async def test_credit_rejects_non_positive(
        self, client: AsyncClient, admin_overrides: None
    ) -> None:
        resp = await client.post("/api/v1/admin/users/u1/tokens/credit", json={"amount": 0})
        assert resp.status_code == 422

    async def test_unknown_currency_is_422(
        self, client: AsyncClient, admin_overrides: None
    ) -> None:
        resp = await client.get("/api/v1/admin/users/u1/balances/euros/verify")
        assert resp.status_code == 422
        assert resp.json()["code"] == 9003
