"""Demo: seed a small marketplace and call every analytics route.

Runs against the in-memory record store, so leave DATABASE_URL unset.

Run with:
    python scripts/demo_dashboard.py
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

from fastapi.testclient import TestClient

from instructor_analytics.api import dependencies as deps
from instructor_analytics.main import app
from instructor_analytics.models.course import Course
from instructor_analytics.models.progress import CourseProgress, LectureProgress
from instructor_analytics.models.purchase import PENDING, Purchase
from instructor_analytics.models.user import User
from instructor_analytics.services import token_service


def _show(client: TestClient, label: str, path: str, token: str) -> dict:
    r = client.get(path, headers={"Authorization": f"Bearer {token}"})
    print(f"\n── {label}: GET {path} → {r.status_code}")
    body = r.json()
    print(json.dumps(body, indent=2)[:1500])
    return body


def main() -> None:
    if deps.async_session_factory is not None:
        raise SystemExit("Unset DATABASE_URL: the demo seeds the in-memory store")

    client = TestClient(app)
    now = datetime.now(UTC)

    # ── Seed data ───────────────────────────────────────────────────
    instructor = User.new(
        email="ada@example.com", name="Ada Instructor", roles=("instructor",)
    )
    students = [
        User.new(email=f"student{i}@example.com", name=f"Student {i}")
        for i in range(1, 5)
    ]
    for user in (instructor, *students):
        deps.user_repo.add(user)

    python = Course.new(
        title="Python from Scratch",
        creator_id=instructor.id,
        price=49.0,
        is_published=True,
        enrolled_students=tuple(s.id for s in students),
    )
    sql = Course.new(
        title="SQL for Analysts",
        creator_id=instructor.id,
        price=29.0,
        is_published=True,
        enrolled_students=tuple(s.id for s in students[:2]),
    )
    draft = Course.new(title="Async Deep Dive", creator_id=instructor.id, price=79.0)
    for course in (python, sql, draft):
        deps.course_repo.add(course)

    for i, student in enumerate(students):
        deps.purchase_repo.add(
            Purchase.new(
                course_id=python.id,
                user_id=student.id,
                amount=python.price,
                created_at=now - timedelta(days=3 * i + 1),
            )
        )
    for student in students[:2]:
        deps.purchase_repo.add(
            Purchase.new(
                course_id=sql.id,
                user_id=student.id,
                amount=sql.price,
                created_at=now - timedelta(days=40),
            )
        )
    # Pending checkouts never count.
    deps.purchase_repo.add(
        Purchase.new(
            course_id=draft.id, user_id=students[3].id, amount=79.0, status=PENDING
        )
    )

    lectures = [f"py-{n:02d}" for n in range(1, 7)]
    for i, student in enumerate(students):
        watched = len(lectures) - 2 * i
        deps.progress_repo.add(
            CourseProgress.new(
                user_id=student.id,
                course_id=python.id,
                lecture_progress=tuple(
                    LectureProgress(lecture_id=lid, viewed=n < watched)
                    for n, lid in enumerate(lectures)
                ),
                completed=watched == len(lectures),
                updated_at=now - timedelta(days=i),
            )
        )

    token = token_service.create_access_token(
        sub=str(instructor.id), roles=["instructor"]
    )

    # ── Analytics ───────────────────────────────────────────────────
    dashboard = _show(client, "1. Dashboard", "/api/v1/analytics/dashboard", token)
    overview = dashboard["data"]["overview"]
    print(
        f"   revenue={overview['totalRevenue']} sales={overview['totalSales']} "
        f"students={overview['totalStudents']}"
    )

    course_path = f"/api/v1/analytics/course/{python.id}"
    _show(client, "2. Course", course_path, token)
    _show(client, "3. Students", "/api/v1/analytics/students", token)
    detail_path = f"/api/v1/analytics/student/{students[0].id}"
    _show(client, "4. Student detail", detail_path, token)

    # ── Scoping ─────────────────────────────────────────────────────
    other = token_service.create_access_token(
        sub=str(students[0].id), roles=["instructor"]
    )
    _show(client, "5. Someone else's course", course_path, other)


if __name__ == "__main__":
    main()
