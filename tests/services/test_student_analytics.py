from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta

import pytest

from instructor_analytics.repos.store import RecordStore
from instructor_analytics.services.aggregates import trailing_months
from instructor_analytics.services.analytics_service import AnalyticsService
from tests.factories import (
    FIXED_NOW,
    add_course,
    add_instructor,
    add_progress,
    add_purchase,
    add_user,
)


def test_no_students_means_zeroed_stats(
    store: RecordStore, service: AnalyticsService
) -> None:
    instructor = add_instructor(store)
    add_course(store, instructor)

    result = asyncio.run(service.student_analytics(instructor.id))

    assert result.total_students == 0
    assert result.top_students == []
    assert result.all_students == []
    assert result.registration_trends == []
    assert result.stats.average_spending == 0.0
    assert result.stats.highest_spender is None
    assert result.stats.total_revenue == 0.0


def test_rollups_fold_purchases_per_student(
    store: RecordStore, service: AnalyticsService
) -> None:
    instructor = add_instructor(store)
    c1 = add_course(store, instructor, "One", price=30.0)
    c2 = add_course(store, instructor, "Two", price=50.0)
    alice, bob = add_user(store, "Alice"), add_user(store, "Bob")
    add_purchase(store, c2, alice, at=FIXED_NOW - timedelta(days=1))
    add_purchase(store, c1, alice, at=FIXED_NOW - timedelta(days=3))
    add_purchase(store, c1, bob)
    add_progress(store, c1, alice, completed=True)
    add_progress(store, c2, alice, viewed=("l1",), unviewed=("l2", "l3", "l4"))

    result = asyncio.run(service.student_analytics(instructor.id))

    assert result.total_students == 2
    top = result.all_students[0]
    assert top.student.name == "Alice"
    assert top.total_spent == 80.0
    # Folded oldest purchase first.
    assert [c.course.title for c in top.courses] == ["One", "Two"]
    assert top.courses_completed == 1
    assert top.average_progress == (100.0 + 25.0) / 2
    assert result.stats.highest_spender is top
    assert result.stats.total_revenue == 110.0
    assert result.stats.average_spending == 55.0


def test_student_without_progress_has_zero_average(
    store: RecordStore, service: AnalyticsService
) -> None:
    instructor = add_instructor(store)
    course = add_course(store, instructor)
    add_purchase(store, course, add_user(store))

    result = asyncio.run(service.student_analytics(instructor.id))

    [rollup] = result.all_students
    assert rollup.average_progress == 0.0
    assert rollup.courses_completed == 0


def test_progress_outside_scope_is_ignored(
    store: RecordStore, service: AnalyticsService
) -> None:
    instructor = add_instructor(store)
    other = add_instructor(store, "Other")
    mine = add_course(store, instructor)
    theirs = add_course(store, other)
    student = add_user(store)
    add_purchase(store, mine, student)
    add_progress(store, theirs, student, completed=True)

    result = asyncio.run(service.student_analytics(instructor.id))

    [rollup] = result.all_students
    assert rollup.courses_completed == 0
    assert rollup.average_progress == 0.0


def test_ranking_is_by_spend_then_student_id_and_top_is_a_prefix(
    store: RecordStore, service: AnalyticsService
) -> None:
    instructor = add_instructor(store)
    course = add_course(store, instructor)
    amounts = [5.0, 40.0, 40.0] + [float(i) for i in range(10, 19)]
    for i, amount in enumerate(amounts):
        add_purchase(store, course, add_user(store, f"S{i}"), amount=amount)

    result = asyncio.run(service.student_analytics(instructor.id))

    spent = [r.total_spent for r in result.all_students]
    assert spent == sorted(spent, reverse=True)
    assert result.all_students[0].student.id < result.all_students[1].student.id
    assert len(result.top_students) == 10
    assert result.top_students == result.all_students[:10]
    assert result.total_students == len(amounts)


def test_purchaser_without_user_record_is_skipped(
    store: RecordStore, service: AnalyticsService, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING)
    instructor = add_instructor(store)
    course = add_course(store, instructor)
    kept = add_user(store, "Kept")
    add_purchase(store, course, kept)
    ghost = add_user(store, "Ghost")
    add_purchase(store, course, ghost)
    store.users._by_id.pop(ghost.id)  # type: ignore[attr-defined]

    result = asyncio.run(service.student_analytics(instructor.id))

    assert [r.student.id for r in result.all_students] == [kept.id]
    assert "purchaser user=" in caplog.text
    assert [p.student_count for p in result.registration_trends] == [1]


def test_registration_trends_count_each_student_once_per_month(
    store: RecordStore, service: AnalyticsService
) -> None:
    instructor = add_instructor(store)
    c1 = add_course(store, instructor, "One")
    c2 = add_course(store, instructor, "Two")
    alice, bob = add_user(store, "Alice"), add_user(store, "Bob")
    march = datetime(2026, 3, 1, tzinfo=UTC)
    january = datetime(2026, 1, 20, tzinfo=UTC)
    too_old = datetime(2025, 9, 30, tzinfo=UTC)
    add_purchase(store, c1, alice, at=march)
    add_purchase(store, c2, alice, at=march + timedelta(days=3))
    add_purchase(store, c1, bob, at=march)
    add_purchase(store, c1, bob, at=january)
    add_purchase(store, c2, alice, at=too_old)

    result = asyncio.run(service.student_analytics(instructor.id))

    trends = [
        (p.year, p.month, p.label, p.student_count)
        for p in result.registration_trends
    ]
    assert trends == [(2026, 1, "Jan 2026", 1), (2026, 3, "Mar 2026", 2)]


@pytest.mark.parametrize(
    ("now", "expected"),
    [
        (
            datetime(2026, 3, 15, tzinfo=UTC),
            [(2025, 10), (2025, 11), (2025, 12), (2026, 1), (2026, 2), (2026, 3)],
        ),
        (
            datetime(2026, 6, 1, tzinfo=UTC),
            [(2026, 1), (2026, 2), (2026, 3), (2026, 4), (2026, 5), (2026, 6)],
        ),
        (
            datetime(2026, 12, 31, tzinfo=UTC),
            [(2026, 7), (2026, 8), (2026, 9), (2026, 10), (2026, 11), (2026, 12)],
        ),
    ],
)
def test_trailing_months_cross_year_boundaries(
    now: datetime, expected: list[tuple[int, int]]
) -> None:
    assert trailing_months(now) == expected
