"""Tests for the rate limiter and request-id middleware on a bare app."""

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from src.pp_gateway.middleware.rate_limit import RateLimitMiddleware, client_ip
from src.pp_gateway.middleware.request_log import (
    REQUEST_ID_HEADER,
    RequestLogMiddleware,
    new_request_id,
)


class FakeRedis:
    """INCR/EXPIRE/TTL over a dict; ``down=True`` makes every call fail."""

    def __init__(self, down: bool = False) -> None:
        self.counts: dict[str, int] = {}
        self.expiry: dict[str, int] = {}
        self.down = down

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("connection refused")

    async def incr(self, key: str) -> int:
        self._check()
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key: str, seconds: int) -> bool:
        self._check()
        self.expiry[key] = seconds
        return True

    async def ttl(self, key: str) -> int:
        self._check()
        return self.expiry.get(key, -1)


def _app(redis: FakeRedis, max_requests: int = 2) -> FastAPI:
    app = FastAPI()

    async def factory() -> FakeRedis:
        return redis

    app.add_middleware(
        RateLimitMiddleware, max_requests=max_requests, window_seconds=60, redis_factory=factory
    )
    app.add_middleware(RequestLogMiddleware)

    @app.get("/ping")
    async def ping(request: Request) -> dict[str, str]:
        return {"request_id": request.state.request_id}

    return app


async def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestRateLimit:
    async def test_blocks_after_limit(self) -> None:
        redis = FakeRedis()
        async with await _client(_app(redis)) as ac:
            assert (await ac.get("/ping")).status_code == 200
            assert (await ac.get("/ping")).status_code == 200
            blocked = await ac.get("/ping")

        assert blocked.status_code == 429
        assert blocked.headers["Retry-After"] == "60"
        body = blocked.json()
        assert body["code"] == 9001
        assert body["request_id"] == blocked.headers[REQUEST_ID_HEADER]
        assert redis.expiry == {"ratelimit:127.0.0.1": 60}

    async def test_limits_per_forwarded_client(self) -> None:
        redis = FakeRedis()
        async with await _client(_app(redis, max_requests=1)) as ac:
            first = await ac.get("/ping", headers={"X-Forwarded-For": "10.0.0.1, 172.16.0.1"})
            second = await ac.get("/ping", headers={"X-Forwarded-For": "10.0.0.2"})
            again = await ac.get("/ping", headers={"X-Forwarded-For": "10.0.0.1"})

        assert first.status_code == 200
        assert second.status_code == 200
        assert again.status_code == 429
        assert set(redis.counts) == {"ratelimit:10.0.0.1", "ratelimit:10.0.0.2"}

    async def test_redis_down_lets_requests_through(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        async with await _client(_app(FakeRedis(down=True), max_requests=0)) as ac:
            resp = await ac.get("/ping")

        assert resp.status_code == 200
        assert "Rate limiter unavailable" in caplog.text

    def test_client_ip_prefers_first_forwarded_hop(self) -> None:
        request = Request({
            "type": "http",
            "headers": [(b"x-forwarded-for", b" 203.0.113.9 , 10.0.0.1")],
            "client": ("10.0.0.1", 1234),
        })
        assert client_ip(request) == "203.0.113.9"

    def test_client_ip_without_peer(self) -> None:
        assert client_ip(Request({"type": "http", "headers": []})) == "unknown"


class TestRequestId:
    async def test_generated_and_echoed(self) -> None:
        async with await _client(_app(FakeRedis(), max_requests=10)) as ac:
            resp = await ac.get("/ping")
        request_id = resp.headers[REQUEST_ID_HEADER]
        assert request_id.startswith("req_")
        assert resp.json()["request_id"] == request_id

    async def test_inbound_id_reused(self) -> None:
        async with await _client(_app(FakeRedis(), max_requests=10)) as ac:
            resp = await ac.get("/ping", headers={REQUEST_ID_HEADER: "trace-0123456789"})
        assert resp.headers[REQUEST_ID_HEADER] == "trace-0123456789"

    @pytest.mark.parametrize("inbound", [None, "", "short", "has spaces in it", "x" * 65, "bad;id;chars"])
    def test_unusable_inbound_replaced(self, inbound: str | None) -> None:
        assert new_request_id(inbound).startswith("req_")
