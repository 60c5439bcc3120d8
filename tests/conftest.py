from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from instructor_analytics.api.dependencies import (
    course_repo,
    progress_repo,
    purchase_repo,
    record_store,
    user_repo,
)
from instructor_analytics.api.ratelimit import rate_limiter
from instructor_analytics.main import app
from instructor_analytics.models.user import User
from instructor_analytics.repos.store import RecordStore
from instructor_analytics.services.analytics_service import AnalyticsService
from instructor_analytics.services.rate_limiter import InMemoryRateLimiter
from tests.factories import FIXED_NOW, add_instructor, make_store, mint_token


@pytest.fixture(autouse=True)
def reset_records() -> None:
    """Clear the app's in-memory record store between tests."""
    user_repo.clear()
    course_repo.clear()
    purchase_repo.clear()
    progress_repo.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Clear rate limit buckets between tests so limits don't bleed."""
    if isinstance(rate_limiter, InMemoryRateLimiter):
        rate_limiter.clear()


@pytest.fixture(autouse=True)
def reset_dependency_overrides() -> Iterator[None]:
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Service-level fixtures: a private store and a frozen clock
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> RecordStore:
    return make_store()


@pytest.fixture
def service(store: RecordStore) -> AnalyticsService:
    return AnalyticsService(
        store, timeout_seconds=5.0, max_concurrency=4, clock=lambda: FIXED_NOW
    )


# ---------------------------------------------------------------------------
# API-level fixtures: the app's own store
# ---------------------------------------------------------------------------


@pytest.fixture
def app_store() -> RecordStore:
    return record_store


@pytest.fixture
def instructor(app_store: RecordStore) -> User:
    return add_instructor(app_store)


@pytest.fixture
def instructor_token(instructor: User) -> str:
    return mint_token(sub=str(instructor.id), roles=["instructor"])


@pytest.fixture
def auth_headers(instructor_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {instructor_token}"}
