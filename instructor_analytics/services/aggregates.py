"""Pure aggregation helpers behind the dashboard and course views.

Every function takes already-scoped records and returns plain result
structures; none of them performs I/O.  Grouping goes through dicts keyed
by stable ids and the emitted order is always fixed by an explicit sort
key, so two calls over the same records produce identical output.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from instructor_analytics.core.clock import MONTH_NAMES, as_utc
from instructor_analytics.models.analytics import (
    CourseCompletionStat,
    DailyEnrollmentPoint,
    EngagementStat,
    EnrollmentView,
    LectureStat,
    MonthlyRevenuePoint,
    Overview,
    RegistrationPoint,
    StudentRef,
    TopCourse,
)
from instructor_analytics.models.money import ZERO
from instructor_analytics.models.progress import CourseProgress
from instructor_analytics.models.purchase import Purchase
from instructor_analytics.models.user import User
from instructor_analytics.services.scope import InstructorScope

logger = logging.getLogger(__name__)

TOP_COURSES = 5
RECENT_ENROLLMENTS = 10
TRAILING_DAYS = 30
TREND_MONTHS = 6


def percent(part: float, whole: float, *, label: str) -> float:
    """part/whole as a percentage in [0, 100]; 0 when whole is 0.

    Values outside the range mean the upstream records disagree with each
    other (e.g. more completions than enrollments); they are clamped and
    logged.
    """
    if whole <= 0:
        return 0.0
    rate = part * 100 / whole
    if rate > 100:
        logger.warning(
            "%s above 100 (part=%s whole=%s); clamping", label, part, whole
        )
        return 100.0
    if rate < 0:
        logger.warning("%s below 0 (part=%s whole=%s); clamping", label, part, whole)
        return 0.0
    return rate


def purchase_order(purchase: Purchase) -> tuple[datetime, UUID]:
    return as_utc(purchase.created_at), purchase.id


def enrollment_view(
    scope: InstructorScope, purchase: Purchase, users: Mapping[UUID, User]
) -> EnrollmentView:
    user = users.get(purchase.user_id)
    return EnrollmentView(
        purchase_id=purchase.id,
        course=scope.ref(purchase.course_id),
        student=StudentRef.of(user) if user is not None else None,
        amount=purchase.amount,
        purchased_at=purchase.created_at,
    )


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


def overview(scope: InstructorScope, purchases: Sequence[Purchase]) -> Overview:
    return Overview(
        total_revenue=sum((p.amount for p in purchases), ZERO),
        total_sales=len(purchases),
        total_students=len({p.user_id for p in purchases}),
        total_courses=len(scope.courses),
        published_courses=sum(1 for c in scope.courses if c.is_published),
    )


def monthly_revenue(
    purchases: Iterable[Purchase], year: int
) -> list[MonthlyRevenuePoint]:
    """Twelve Jan..Dec slots for `year`; months without sales report zeros."""
    revenue = [ZERO] * 12
    sales = [0] * 12
    for purchase in purchases:
        created = as_utc(purchase.created_at)
        if created.year != year:
            continue
        revenue[created.month - 1] += purchase.amount
        sales[created.month - 1] += 1
    return [
        MonthlyRevenuePoint(month=MONTH_NAMES[i], revenue=revenue[i], sales=sales[i])
        for i in range(12)
    ]


def top_courses(
    scope: InstructorScope, purchases: Iterable[Purchase], limit: int = TOP_COURSES
) -> list[TopCourse]:
    revenue: dict[UUID, Decimal] = {}
    sales: Counter[UUID] = Counter()
    for purchase in purchases:
        revenue[purchase.course_id] = (
            revenue.get(purchase.course_id, ZERO) + purchase.amount
        )
        sales[purchase.course_id] += 1

    ranked = sorted(revenue, key=lambda cid: (-revenue[cid], cid))[:limit]
    result = []
    for course_id in ranked:
        ref = scope.ref(course_id)
        result.append(
            TopCourse(
                course_id=course_id,
                course_title=ref.title,
                course_price=ref.price,
                revenue=revenue[course_id],
                sales=sales[course_id],
            )
        )
    return result


def course_completion(
    scope: InstructorScope, progress: Iterable[CourseProgress]
) -> list[CourseCompletionStat]:
    """One entry per scoped course: completed progress records vs. enrollments."""
    completed = Counter(p.course_id for p in progress if p.completed)
    return [
        CourseCompletionStat(
            course=scope.ref(course.id),
            enrolled_count=course.enrolled_count,
            completed_count=completed[course.id],
            completion_rate=percent(
                completed[course.id],
                course.enrolled_count,
                label=f"completion rate for course={course.id}",
            ),
        )
        for course in scope.courses
    ]


def student_engagement(
    scope: InstructorScope, progress: Iterable[CourseProgress]
) -> list[EngagementStat]:
    """Per course that has any progress record at all."""
    by_course: dict[UUID, list[CourseProgress]] = {}
    for record in progress:
        by_course.setdefault(record.course_id, []).append(record)

    stats = []
    for course in scope.courses:
        records = by_course.get(course.id)
        if not records:
            continue
        total = len(records)
        active = sum(1 for r in records if r.has_activity)
        stats.append(
            EngagementStat(
                course=scope.ref(course.id),
                total_students=total,
                active_students=active,
                completed_students=sum(1 for r in records if r.completed),
                engagement_rate=percent(
                    active, total, label=f"engagement rate for course={course.id}"
                ),
            )
        )
    return stats


# ---------------------------------------------------------------------------
# Course analytics
# ---------------------------------------------------------------------------


def lecture_completion(progress: Iterable[CourseProgress]) -> dict[str, LectureStat]:
    """{lecture_id: viewed/total} over every lecture seen in the records.

    `total` counts records that mention the lecture, `viewed` those that
    mark it viewed.  A lecture listed more than once in a record counts
    once for that record, and as viewed if any of its entries is viewed,
    so `total` is a count of records rather than of entries.  Lectures
    nobody has touched are absent.
    """
    stats: dict[str, LectureStat] = {}
    for record in progress:
        # A lecture listed twice in one record still counts once.
        seen: dict[str, bool] = {}
        for lecture in record.lecture_progress:
            prior = seen.get(lecture.lecture_id, False)
            seen[lecture.lecture_id] = prior or lecture.viewed
        for lecture_id, viewed in seen.items():
            stat = stats.setdefault(lecture_id, LectureStat())
            stat.total += 1
            if viewed:
                stat.viewed += 1
    return {lecture_id: stats[lecture_id] for lecture_id in sorted(stats)}


def daily_enrollments(
    purchases: Iterable[Purchase], today: date, days: int = TRAILING_DAYS
) -> list[DailyEnrollmentPoint]:
    first = today - timedelta(days=days - 1)
    counts: Counter[date] = Counter()
    for purchase in purchases:
        day = as_utc(purchase.created_at).date()
        if first <= day <= today:
            counts[day] += 1
    return [
        DailyEnrollmentPoint(date=day.isoformat(), enrollments=counts[day])
        for day in sorted(counts)
    ]


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------


def trailing_months(now: datetime, count: int = TREND_MONTHS) -> list[tuple[int, int]]:
    """(year, month) for the current month and the count-1 before it, oldest first."""
    year, month = now.year, now.month
    keys = []
    for _ in range(count):
        keys.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    keys.reverse()
    return keys


def registration_trends(
    purchases: Iterable[Purchase], now: datetime, months: int = TREND_MONTHS
) -> list[RegistrationPoint]:
    buckets: dict[tuple[int, int], set[UUID]] = {
        key: set() for key in trailing_months(now, months)
    }
    for purchase in purchases:
        created = as_utc(purchase.created_at)
        students = buckets.get((created.year, created.month))
        if students is not None:
            students.add(purchase.user_id)
    return [
        RegistrationPoint(
            year=year,
            month=month,
            label=f"{MONTH_NAMES[month - 1]} {year}",
            student_count=len(students),
        )
        for (year, month), students in buckets.items()
        if students
    ]
