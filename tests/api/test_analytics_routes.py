"""Analytics routes over HTTP: envelope shape, auth, and error mapping."""

from __future__ import annotations

import uuid
from collections.abc import Collection
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient

from instructor_analytics.api.dependencies import get_analytics_service
from instructor_analytics.db.tables import PurchaseRow
from instructor_analytics.main import app
from instructor_analytics.models.purchase import Purchase
from instructor_analytics.models.user import User
from instructor_analytics.repos.pg_purchase_repo import _row_to_purchase
from instructor_analytics.repos.store import RecordStore
from instructor_analytics.services import token_service
from instructor_analytics.services.analytics_service import AnalyticsService
from tests.factories import (
    FIXED_NOW,
    add_course,
    add_instructor,
    add_progress,
    add_purchase,
    add_user,
    mint_token,
)

DASHBOARD = "/api/v1/analytics/dashboard"
STUDENTS = "/api/v1/analytics/students"


def _course_url(course_id: object) -> str:
    return f"/api/v1/analytics/course/{course_id}"


def _student_url(student_id: object) -> str:
    return f"/api/v1/analytics/student/{student_id}"


@pytest.fixture
def seeded(app_store: RecordStore, instructor: User) -> dict[str, Any]:
    course = add_course(app_store, instructor, "Python 101", price=40.0)
    draft = add_course(app_store, instructor, "Draft", is_published=False)
    alice = add_user(app_store, "Alice")
    bob = add_user(app_store, "Bob")
    add_purchase(app_store, course, alice)
    add_purchase(app_store, course, bob, amount=20.0)
    add_progress(app_store, course, alice, viewed=("l1", "l2"), completed=True)
    add_progress(app_store, course, bob, viewed=("l1",), unviewed=("l2",))
    return {"course": course, "draft": draft, "alice": alice, "bob": bob}


# ---------------------------------------------------------------------------
# Successful responses
# ---------------------------------------------------------------------------


def test_dashboard_envelope(
    client: TestClient, auth_headers: dict[str, str], seeded: dict[str, Any]
) -> None:
    resp = client.get(DASHBOARD, headers=auth_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    assert data["overview"] == {
        "totalRevenue": 60.0,
        "totalSales": 2,
        "totalStudents": 2,
        "totalCourses": 2,
        "publishedCourses": 1,
    }
    assert len(data["monthlyRevenue"]) == 12
    assert data["topCourses"][0]["courseTitle"] == "Python 101"
    assert len(data["recentEnrollments"]) == 2
    assert len(data["rawPurchases"]) == 2
    assert {c["course"]["title"] for c in data["courseCompletionData"]} == {
        "Python 101",
        "Draft",
    }
    [engagement] = data["studentEngagement"]
    assert engagement["activeStudents"] == 2
    assert engagement["completedStudents"] == 1
    assert engagement["engagementRate"] == 100.0


def test_dashboard_for_instructor_without_courses(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    resp = client.get(DASHBOARD, headers=auth_headers)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["overview"]["totalRevenue"] == 0
    assert all(m["revenue"] == 0 for m in data["monthlyRevenue"])
    assert data["topCourses"] == []
    assert data["courseCompletionData"] == []


def test_course_analytics_envelope(
    client: TestClient, auth_headers: dict[str, str], seeded: dict[str, Any]
) -> None:
    course = seeded["course"]

    resp = client.get(_course_url(course.id), headers=auth_headers)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["course"]["isPublished"] is True
    assert data["stats"] == {
        "totalEnrollments": 2,
        "totalRevenue": 60.0,
        "completionRate": 50.0,
    }
    assert data["lectureCompletion"] == {
        "l1": {"viewed": 2, "total": 2},
        "l2": {"viewed": 1, "total": 2},
    }
    assert len(data["progressData"]) == 2
    assert {p["percentComplete"] for p in data["progressData"]} == {100.0, 50.0}
    assert len(data["purchases"]) == 2


def test_students_envelope(
    client: TestClient, auth_headers: dict[str, str], seeded: dict[str, Any]
) -> None:
    resp = client.get(STUDENTS, headers=auth_headers)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["totalStudents"] == 2
    assert data["topStudents"][0]["student"]["name"] == "Alice"
    assert data["topStudents"][0]["totalSpent"] == 40.0
    assert data["stats"]["highestSpender"]["student"]["name"] == "Alice"
    assert data["stats"]["averageSpending"] == 30.0
    assert data["stats"]["totalRevenue"] == 60.0


def test_student_detail_envelope(
    client: TestClient, auth_headers: dict[str, str], seeded: dict[str, Any]
) -> None:
    alice = seeded["alice"]

    resp = client.get(_student_url(alice.id), headers=auth_headers)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["student"]["email"] == "alice@example.com"
    assert data["stats"]["completedCourses"] == 1
    assert data["stats"]["totalWatchTime"] == {
        "value": 20,
        "estimated": True,
        "basis": "viewed_lectures_x_10_minutes",
    }
    assert len(data["completionTrends"]) == 30
    assert {e["type"] for e in data["activityTimeline"]} == {
        "course_purchased",
        "course_completed",
        "lecture_completed",
    }


# ---------------------------------------------------------------------------
# Error envelopes
# ---------------------------------------------------------------------------


def test_unknown_course_is_404_envelope(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    resp = client.get(_course_url(uuid.uuid4()), headers=auth_headers)

    assert resp.status_code == 404
    assert resp.json() == {
        "success": False,
        "message": "Course not found or unauthorized",
    }


def test_other_instructors_course_is_404(
    client: TestClient, auth_headers: dict[str, str], app_store: RecordStore
) -> None:
    other = add_instructor(app_store, "Other")
    theirs = add_course(app_store, other)

    resp = client.get(_course_url(theirs.id), headers=auth_headers)

    assert resp.status_code == 404
    assert resp.json()["message"] == "Course not found or unauthorized"


def test_unknown_student_is_404_envelope(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    resp = client.get(_student_url(uuid.uuid4()), headers=auth_headers)

    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Student not found"}


@pytest.mark.parametrize("url", [_course_url("nope"), _student_url("42")])
def test_malformed_id_is_422(
    client: TestClient, auth_headers: dict[str, str], url: str
) -> None:
    resp = client.get(url, headers=auth_headers)
    assert resp.status_code == 422


class _BrokenPurchases:
    async def list_completed(
        self, course_ids: Collection[uuid.UUID], **_kwargs: object
    ) -> list[Purchase]:
        raise RuntimeError("relation course_purchases does not exist")


def test_storage_failure_is_500_envelope(
    client: TestClient, auth_headers: dict[str, str], app_store: RecordStore
) -> None:
    broken = AnalyticsService(
        replace(app_store, purchases=_BrokenPurchases()),
        timeout_seconds=5.0,
        max_concurrency=2,
    )
    app.dependency_overrides[get_analytics_service] = lambda: broken

    resp = client.get(DASHBOARD, headers=auth_headers)

    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "message": "Failed to fetch dashboard analytics",
    }
    assert "course_purchases" not in resp.text


class _NegativeAmountRows:
    """Reads a corrupt course_purchases row through the PostgreSQL mapping."""

    async def list_completed(
        self, course_ids: Collection[uuid.UUID], **_kwargs: object
    ) -> list[Purchase]:
        row = PurchaseRow(
            id=uuid.uuid4(),
            course_id=next(iter(course_ids)),
            user_id=uuid.uuid4(),
            amount=Decimal("-5.00"),
            status="completed",
            created_at=FIXED_NOW,
        )
        return [_row_to_purchase(row)]


def test_malformed_purchase_record_is_500_envelope(
    client: TestClient,
    auth_headers: dict[str, str],
    app_store: RecordStore,
    instructor: User,
) -> None:
    add_course(app_store, instructor)
    reader = AnalyticsService(
        replace(app_store, purchases=_NegativeAmountRows()),
        timeout_seconds=5.0,
        max_concurrency=2,
    )
    app.dependency_overrides[get_analytics_service] = lambda: reader

    resp = client.get(DASHBOARD, headers=auth_headers)

    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "message": "Failed to fetch dashboard analytics",
    }


# ---------------------------------------------------------------------------
# Authentication and roles
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "url", [DASHBOARD, STUDENTS, _course_url(uuid.uuid4()), _student_url(uuid.uuid4())]
)
def test_missing_token_is_401(client: TestClient, url: str) -> None:
    resp = client.get(url)
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Not authenticated"


def test_expired_token_is_401(client: TestClient) -> None:
    token = token_service.create_access_token(
        sub=str(uuid.uuid4()), roles=["instructor"], ttl=timedelta(minutes=-5)
    )

    resp = client.get(DASHBOARD, headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token expired"


def test_invalid_token_is_401(client: TestClient) -> None:
    resp = client.get(DASHBOARD, headers={"Authorization": "Bearer not-a-jwt"})

    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"
    assert resp.headers["www-authenticate"] == "Bearer"


def test_plain_user_is_403(client: TestClient, app_store: RecordStore) -> None:
    student = add_user(app_store)
    token = mint_token(sub=str(student.id), roles=["user"])

    resp = client.get(DASHBOARD, headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 403
    assert resp.json()["detail"] == "Insufficient permissions"


def test_admin_may_read_own_analytics(client: TestClient) -> None:
    token = mint_token(sub=str(uuid.uuid4()), roles=["admin"])

    resp = client.get(DASHBOARD, headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 200


def test_non_uuid_subject_is_403(client: TestClient) -> None:
    token = mint_token(sub="instructor-without-id", roles=["instructor"])

    resp = client.get(DASHBOARD, headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 403
    assert resp.json()["detail"] == "Token subject is not a valid user id"
