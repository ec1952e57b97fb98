"""Unit tests for rate limiting and request logging middleware."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from starlette.requests import Request

from src.p2p_gateway.auth.jwt_handler import create_access_token
from src.p2p_gateway.middleware.rate_limit import RateLimitMiddleware, client_identity
from src.p2p_gateway.middleware.request_log import RequestLogMiddleware


def _request(
    headers: dict[str, str], client: tuple[str, int] | None = ("10.0.0.9", 5000)
) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


class _CountingRedis:
    def __init__(self) -> None:
        self.counts: dict[str, int] = {}
        self.expire = AsyncMock()

    async def incr(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]


def _app(limit: int, redis_factory: object) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limit=limit, redis_factory=redis_factory)
    app.add_middleware(RequestLogMiddleware)

    @app.post("/ping")
    async def ping() -> dict[str, str]:
        return {"pong": "ok"}

    @app.get("/ping")
    async def ping_get() -> dict[str, str]:
        return {"pong": "ok"}

    return app


class TestClientIdentity:
    def test_valid_token_uses_user_id(self) -> None:
        request = _request({"Authorization": f"Bearer {create_access_token(12)}"})
        assert client_identity(request) == "user:12"

    def test_invalid_token_falls_back_to_ip(self) -> None:
        request = _request({"Authorization": "Bearer nope"})
        assert client_identity(request) == "ip:10.0.0.9"

    def test_forwarded_for_first_hop(self) -> None:
        request = _request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1"})
        assert client_identity(request) == "ip:203.0.113.5"

    def test_no_client(self) -> None:
        assert client_identity(_request({}, client=None)) == "ip:unknown"


class TestRateLimitMiddleware:
    async def test_limit_exceeded_returns_429_envelope(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            "src.p2p_gateway.middleware.rate_limit.time",
            SimpleNamespace(time=lambda: 1_000_030.0),
        )
        redis = _CountingRedis()
        app = _app(2, AsyncMock(return_value=redis))
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            first = await ac.post("/ping")
            second = await ac.post("/ping")
            third = await ac.post("/ping")

        assert first.status_code == 200
        assert second.status_code == 200
        assert third.status_code == 429
        body = third.json()
        assert body["code"] == 9001
        assert body["data"] is None
        assert third.headers["Retry-After"] == "50"
        redis.expire.assert_awaited_once()

    async def test_reads_are_not_limited(self) -> None:
        redis = _CountingRedis()
        app = _app(1, AsyncMock(return_value=redis))
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            for _ in range(3):
                assert (await ac.get("/ping")).status_code == 200
        assert redis.counts == {}

    async def test_redis_outage_fails_open(self) -> None:
        factory = AsyncMock(side_effect=RedisConnectionError("down"))
        app = _app(1, factory)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            responses = [await ac.post("/ping") for _ in range(3)]

        assert all(r.status_code == 200 for r in responses)


class TestRequestLogMiddleware:
    async def test_request_id_header(self) -> None:
        app = _app(0, AsyncMock())
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/ping")

        assert response.headers["X-Request-ID"].startswith("req_")
