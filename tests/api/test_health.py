from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from instructor_analytics.api import health


def test_health_returns_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    # Tests run against the in-memory store with no Redis
    assert data["checks"] == {"database": "not_configured", "redis": "not_configured"}


def test_ready_returns_200_without_database(client: TestClient) -> None:
    resp = client.get("/ready")
    assert resp.status_code == 200


def test_health_is_not_rate_limited(client: TestClient) -> None:
    for _ in range(40):
        resp = client.get("/health")
        assert resp.status_code == 200
    assert "x-ratelimit-limit" not in resp.headers


def test_unreachable_redis_degrades_health_but_not_readiness(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def refuse() -> None:
        raise ConnectionError("redis down")

    monkeypatch.setattr(health, "redis_pool", object())
    monkeypatch.setattr(health, "ping_redis", refuse)

    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {
        "status": "degraded",
        "checks": {"database": "not_configured", "redis": "degraded"},
    }
    assert client.get("/ready").status_code == 200


def test_unreachable_database_fails_readiness(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def refuse() -> None:
        raise OSError("connection refused")

    monkeypatch.setattr(health.db, "engine", object())
    monkeypatch.setattr(health.db, "ping_database", refuse)

    assert client.get("/health").json()["checks"]["database"] == "degraded"
    assert client.get("/ready").status_code == 503
