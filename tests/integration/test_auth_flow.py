"""Integration tests for the auth flow.

Run: RUN_INTEGRATION=1 pytest tests/integration -v
Pre-condition: PostgreSQL up and ``alembic upgrade head`` applied.
"""

import uuid

import pytest
from httpx import AsyncClient

from config.settings import settings

pytestmark = pytest.mark.asyncio(loop_scope="session")


def unique_user() -> dict[str, str]:
    uid = uuid.uuid4().hex[:8]
    return {
        "username": f"testuser_{uid}",
        "email": f"test_{uid}@example.com",
        "password": "TestPass1",
    }


async def _login(client: AsyncClient, user: dict[str, str]) -> dict[str, str]:
    resp = await client.post(
        "/api/v1/auth/login",
        json={"username": user["username"], "password": user["password"]},
    )
    return resp.json()["data"]


class TestRegister:
    async def test_register_success(self, client: AsyncClient) -> None:
        user = unique_user()
        resp = await client.post("/api/v1/auth/register", json=user)
        assert resp.status_code == 201
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["username"] == user["username"]
        assert body["data"]["token_balance"] == settings.SIGNUP_BONUS_TOKENS
        assert "request_id" in body

    async def test_register_duplicate_username(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/v1/auth/register", json=user)
        resp = await client.post(
            "/api/v1/auth/register",
            json={**user, "email": f"other_{uuid.uuid4().hex[:6]}@example.com"},
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == 1001

    async def test_register_duplicate_email(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/v1/auth/register", json=user)
        resp = await client.post(
            "/api/v1/auth/register",
            json={**user, "username": f"other_{uuid.uuid4().hex[:6]}"},
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == 1002


class TestLogin:
    async def test_login_success(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/v1/auth/register", json=user)
        data = await _login(client, user)
        assert data["token_type"] == "Bearer"
        assert data["user"]["username"] == user["username"]
        assert data["user"]["is_admin"] is False

    async def test_login_wrong_password(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/v1/auth/register", json=user)
        resp = await client.post(
            "/api/v1/auth/login",
            json={"username": user["username"], "password": "WrongPass1"},
        )
        assert resp.status_code == 401
        assert resp.json()["code"] == 1003


class TestProfile:
    async def test_me_shows_both_balances(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/v1/auth/register", json=user)
        tokens = await _login(client, user)

        resp = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"}
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["points_balance"] == 0
        assert data["token_balance"] == settings.SIGNUP_BONUS_TOKENS

    async def test_refreshed_token_works(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/v1/auth/register", json=user)
        tokens = await _login(client, user)

        refreshed = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        access = refreshed.json()["data"]["access_token"]
        resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {access}"})
        assert resp.status_code == 200

    async def test_player_cannot_reach_admin(self, client: AsyncClient) -> None:
        user = unique_user()
        await client.post("/api/v1/auth/register", json=user)
        tokens = await _login(client, user)

        resp = await client.get(
            "/api/v1/admin/stats", headers={"Authorization": f"Bearer {tokens['access_token']}"}
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == 1006
