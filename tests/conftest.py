"""Shared test fixtures.

Settings are read at import time, so the environment is prepared before the
app (and anything importing config.settings) is loaded.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BACKGROUND_JOBS_ENABLED", "false")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.main import app  # noqa: E402


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# In-memory ledger storage for engine-level tests
# ---------------------------------------------------------------------------

from unittest.mock import AsyncMock  # noqa: E402

from src.pp_common.enums import PointsTransactionType, TokenTransactionType  # noqa: E402
from src.pp_ledger.domain.engine import LedgerEngine  # noqa: E402
from src.pp_ledger.domain.models import LedgerEntry  # noqa: E402


class FakeLedgerAdapter:
    """Dict-backed LedgerAdapterProtocol; balances and entries stay inspectable."""

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self.balances: dict[str, int] = dict(balances or {})
        self.entries: list[LedgerEntry] = []

    async def get_balance_for_update(self, db, user_id):  # type: ignore[no-untyped-def]
        return self.balances.get(user_id)

    async def update_balance(self, db, user_id, new_balance):  # type: ignore[no-untyped-def]
        self.balances[user_id] = new_balance

    async def insert_entry(  # type: ignore[no-untyped-def]
        self, db, user_id, tx_type, amount, balance_after,
        reference_type, reference_id, description,
    ):
        entry = LedgerEntry(
            id=len(self.entries) + 1,
            user_id=user_id,
            tx_type=tx_type,
            amount=amount,
            balance_after=balance_after,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        )
        self.entries.append(entry)
        return entry

    async def get_cached_balance(self, db, user_id):  # type: ignore[no-untyped-def]
        return self.balances.get(user_id)

    async def sum_entries(self, db, user_id):  # type: ignore[no-untyped-def]
        return sum(e.amount for e in self.entries if e.user_id == user_id)

    async def list_entries(self, db, user_id, cursor_id, limit, tx_types):  # type: ignore[no-untyped-def]
        rows = [
            e for e in reversed(self.entries)
            if e.user_id == user_id
            and (cursor_id is None or e.id < cursor_id)
            and (not tx_types or e.tx_type in tx_types)
        ]
        return rows[:limit]

    async def count_entries(self, db, user_id, tx_types):  # type: ignore[no-untyped-def]
        return len([
            e for e in self.entries
            if e.user_id == user_id and (not tx_types or e.tx_type in tx_types)
        ])


@pytest.fixture
def mock_db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def token_adapter() -> FakeLedgerAdapter:
    return FakeLedgerAdapter()


@pytest.fixture
def points_adapter() -> FakeLedgerAdapter:
    return FakeLedgerAdapter()


@pytest.fixture
def token_engine(token_adapter: FakeLedgerAdapter) -> LedgerEngine:
    return LedgerEngine(
        name="token",
        adapter=token_adapter,
        tx_types=TokenTransactionType,
        reserved_types=frozenset({TokenTransactionType.PURCHASE.value}),
    )


@pytest.fixture
def points_engine(points_adapter: FakeLedgerAdapter) -> LedgerEngine:
    return LedgerEngine(name="points", adapter=points_adapter, tx_types=PointsTransactionType)
