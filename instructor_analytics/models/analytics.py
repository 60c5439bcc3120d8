"""Derived analytics structures.

Everything here is computed per request from Course, Purchase and
CourseProgress records and discarded after the response is sent.
Nothing in this module is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Generic, TypeVar
from uuid import UUID

from instructor_analytics.models.course import Course
from instructor_analytics.models.money import ZERO
from instructor_analytics.models.progress import CourseProgress, LectureProgress
from instructor_analytics.models.user import User

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Estimated(Generic[T]):
    """A heuristic value that must never be read as measured telemetry.

    `basis` names the heuristic so consumers can show it next to the value.
    """

    value: T
    basis: str

    @property
    def estimated(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# References embedded in results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CourseRef:
    id: UUID
    title: str
    price: Decimal
    thumbnail: str | None
    is_published: bool

    @staticmethod
    def of(course: Course) -> CourseRef:
        return CourseRef(
            id=course.id,
            title=course.title,
            price=course.price,
            thumbnail=course.thumbnail,
            is_published=course.is_published,
        )


@dataclass(frozen=True, slots=True)
class StudentRef:
    id: UUID
    name: str
    email: str
    photo_url: str | None
    created_at: datetime | None

    @staticmethod
    def of(user: User) -> StudentRef:
        return StudentRef(
            id=user.id,
            name=user.name,
            email=user.email,
            photo_url=user.photo_url,
            created_at=user.created_at,
        )


@dataclass(frozen=True, slots=True)
class EnrollmentView:
    """A completed purchase joined with its course and purchaser."""

    purchase_id: UUID
    course: CourseRef
    student: StudentRef | None  # None when the user record is missing
    amount: Decimal
    purchased_at: datetime


@dataclass(frozen=True, slots=True)
class ProgressView:
    id: UUID
    course: CourseRef
    student: StudentRef | None
    lecture_progress: tuple[LectureProgress, ...]
    completed: bool
    percent_complete: float
    updated_at: datetime | None

    @staticmethod
    def of(
        progress: CourseProgress, course: CourseRef, student: StudentRef | None
    ) -> ProgressView:
        return ProgressView(
            id=progress.id,
            course=course,
            student=student,
            lecture_progress=progress.lecture_progress,
            completed=progress.completed,
            percent_complete=progress.percent_complete(),
            updated_at=progress.updated_at,
        )


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Overview:
    total_revenue: Decimal = ZERO
    total_sales: int = 0
    total_students: int = 0
    total_courses: int = 0
    published_courses: int = 0


@dataclass(frozen=True, slots=True)
class MonthlyRevenuePoint:
    month: str  # Jan..Dec
    revenue: Decimal
    sales: int


@dataclass(frozen=True, slots=True)
class TopCourse:
    course_id: UUID
    course_title: str
    course_price: Decimal
    revenue: Decimal
    sales: int


@dataclass(frozen=True, slots=True)
class CourseCompletionStat:
    course: CourseRef
    enrolled_count: int
    completed_count: int
    completion_rate: float


@dataclass(frozen=True, slots=True)
class EngagementStat:
    course: CourseRef
    total_students: int
    active_students: int
    completed_students: int
    engagement_rate: float


@dataclass(frozen=True, slots=True)
class DashboardResult:
    overview: Overview
    monthly_revenue: list[MonthlyRevenuePoint]
    top_courses: list[TopCourse]
    recent_enrollments: list[EnrollmentView]
    course_completion: list[CourseCompletionStat]
    student_engagement: list[EngagementStat]
    raw_purchases: list[EnrollmentView]


# ---------------------------------------------------------------------------
# Course analytics
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class LectureStat:
    viewed: int = 0
    total: int = 0


@dataclass(frozen=True, slots=True)
class DailyEnrollmentPoint:
    date: str  # YYYY-MM-DD (UTC)
    enrollments: int


@dataclass(frozen=True, slots=True)
class CourseStats:
    total_enrollments: int
    total_revenue: Decimal
    completion_rate: float


@dataclass(frozen=True, slots=True)
class CourseAnalyticsResult:
    course: CourseRef
    purchases: list[EnrollmentView]
    progress: list[ProgressView]
    lecture_completion: dict[str, LectureStat]
    daily_enrollments: list[DailyEnrollmentPoint]
    stats: CourseStats


# ---------------------------------------------------------------------------
# Student rollups
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PurchasedCourse:
    course: CourseRef
    purchase_date: datetime
    amount: Decimal


@dataclass(slots=True)
class StudentRollup:
    """Accumulator while folding; treated as read-only once emitted."""

    student: StudentRef
    courses: list[PurchasedCourse] = field(default_factory=list)
    total_spent: Decimal = ZERO
    courses_completed: int = 0
    average_progress: float = 0.0


@dataclass(frozen=True, slots=True)
class RegistrationPoint:
    year: int
    month: int
    label: str  # e.g. "Mar 2026"
    student_count: int


@dataclass(frozen=True, slots=True)
class StudentStats:
    average_spending: Decimal
    highest_spender: StudentRollup | None
    total_revenue: Decimal


@dataclass(frozen=True, slots=True)
class StudentsResult:
    total_students: int
    top_students: list[StudentRollup]
    all_students: list[StudentRollup]
    registration_trends: list[RegistrationPoint]
    stats: StudentStats


# ---------------------------------------------------------------------------
# Student detail
# ---------------------------------------------------------------------------

COURSE_PURCHASED = "course_purchased"
LECTURE_COMPLETED = "lecture_completed"
COURSE_COMPLETED = "course_completed"


@dataclass(frozen=True, slots=True)
class ActivityEvent:
    type: str  # course_purchased|lecture_completed|course_completed
    description: str
    timestamp: datetime
    course: CourseRef
    estimated: bool = False  # True when the timestamp is synthetic


@dataclass(frozen=True, slots=True)
class TrendPoint:
    date: str  # YYYY-MM-DD (UTC)
    progress: float
    estimated: bool = True


@dataclass(frozen=True, slots=True)
class StudentDetailStats:
    total_courses: int
    completed_courses: int
    in_progress_courses: int
    not_started_courses: int
    total_spent: Decimal
    total_lectures_watched: int
    average_progress: float
    total_watch_time: Estimated[int]  # minutes


@dataclass(frozen=True, slots=True)
class StudentDetailResult:
    student: StudentRef
    purchased_courses: list[PurchasedCourse]
    progress: list[ProgressView]
    stats: StudentDetailStats
    completion_trends: list[TrendPoint]
    activity_timeline: list[ActivityEvent]
