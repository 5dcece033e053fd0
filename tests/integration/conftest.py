"""Integration-test fixtures.

Needs a migrated PostgreSQL at DATABASE_URL (``alembic upgrade head``) and
RUN_INTEGRATION=1. All tests share one event loop so the module-level
SQLAlchemy engine pool stays valid for the whole session. The odds provider
is replaced by a fixed in-memory feed.
"""

import os
import uuid
from datetime import UTC, datetime
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.main import app
from src.pp_common.database import async_session_factory
from src.pp_odds.domain.models import EventScore, NormalizedOdds, OddsOutcome
from src.pp_prediction.api import router as prediction_router


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.environ.get("RUN_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set RUN_INTEGRATION=1 to run integration tests")
    for item in items:
        if "integration" in item.path.parts:
            item.add_marker(skip)
            item.add_marker(pytest.mark.integration)


class StaticOddsFeed:
    """Every event is priced Home 2.00 / Away 1.80."""

    async def get_event_odds(self, sport_key: str, event_id: str) -> NormalizedOdds:
        return NormalizedOdds(
            event_id=event_id,
            sport_key=sport_key,
            outcomes=[OddsOutcome("Home", Decimal("2.00")), OddsOutcome("Away", Decimal("1.80"))],
            updated_at=datetime.now(UTC),
        )

    async def get_sport_odds(self, sport_key: str) -> list[NormalizedOdds]:
        return []

    async def get_scores(self, sport_key: str) -> list[EventScore]:
        return []


@pytest.fixture(scope="session", autouse=True)
def static_odds() -> None:
    prediction_router._service._provider = StaticOddsFeed()


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _register_and_login(client: AsyncClient, prefix: str) -> tuple[str, str]:
    username = f"{prefix}_{uuid.uuid4().hex[:10]}"
    reg = await client.post("/api/v1/auth/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": "TestPass123",
    })
    assert reg.status_code == 201, reg.text
    login = await client.post("/api/v1/auth/login", json={
        "username": username,
        "password": "TestPass123",
    })
    assert login.status_code == 200, login.text
    return reg.json()["data"]["user_id"], login.json()["data"]["access_token"]


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def user_headers(client: AsyncClient) -> dict[str, str]:
    _, token = await _register_and_login(client, "player")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def admin_headers(client: AsyncClient) -> dict[str, str]:
    user_id, token = await _register_and_login(client, "admin")
    async with async_session_factory() as db:
        await db.execute(
            text("UPDATE users SET is_admin = TRUE WHERE id = :id"), {"id": user_id}
        )
        await db.commit()
    return {"Authorization": f"Bearer {token}"}
