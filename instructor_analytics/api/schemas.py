"""Response schemas for the analytics routes.

Field names are snake_case in Python and camelCase on the wire; the
alias generator does the translation.
Every route answers with the `{success, data}` envelope, failures with
`{success: false, message}`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")

# Amounts are Decimal inside the service and JSON numbers on the wire.
Money = Annotated[float, BeforeValidator(float)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(CamelModel, Generic[DataT]):
    success: bool = True
    data: DataT


class ErrorEnvelope(CamelModel):
    success: bool = False
    message: str


# --- Shared references ---


class CourseSummaryOut(CamelModel):
    id: UUID
    title: str
    price: Money
    thumbnail: str | None
    is_published: bool


class StudentOut(CamelModel):
    id: UUID
    name: str
    email: str
    photo_url: str | None
    created_at: datetime | None


class EnrollmentOut(CamelModel):
    id: UUID
    course: CourseSummaryOut
    student: StudentOut | None
    amount: Money
    created_at: datetime


class LectureProgressOut(CamelModel):
    lecture_id: str
    viewed: bool


class ProgressOut(CamelModel):
    id: UUID
    course: CourseSummaryOut
    student: StudentOut | None
    lecture_progress: list[LectureProgressOut]
    completed: bool
    percent_complete: float
    updated_at: datetime | None


# --- Dashboard ---


class OverviewOut(CamelModel):
    total_revenue: Money
    total_sales: int
    total_students: int
    total_courses: int
    published_courses: int


class MonthlyRevenueOut(CamelModel):
    month: str
    revenue: Money
    sales: int


class TopCourseOut(CamelModel):
    course_id: UUID
    course_title: str
    course_price: Money
    revenue: Money
    sales: int


class CourseCompletionOut(CamelModel):
    course: CourseSummaryOut
    enrolled_count: int
    completed_count: int
    completion_rate: float


class EngagementOut(CamelModel):
    course: CourseSummaryOut
    total_students: int
    active_students: int
    completed_students: int
    engagement_rate: float


class DashboardOut(CamelModel):
    overview: OverviewOut
    monthly_revenue: list[MonthlyRevenueOut]
    top_courses: list[TopCourseOut]
    recent_enrollments: list[EnrollmentOut]
    course_completion_data: list[CourseCompletionOut]
    student_engagement: list[EngagementOut]
    raw_purchases: list[EnrollmentOut]


# --- Course analytics ---


class LectureStatOut(CamelModel):
    viewed: int
    total: int


class DailyEnrollmentOut(CamelModel):
    date: str
    enrollments: int


class CourseStatsOut(CamelModel):
    total_enrollments: int
    total_revenue: Money
    completion_rate: float


class CourseAnalyticsOut(CamelModel):
    course: CourseSummaryOut
    purchases: list[EnrollmentOut]
    progress_data: list[ProgressOut]
    lecture_completion: dict[str, LectureStatOut]
    daily_enrollments: list[DailyEnrollmentOut]
    stats: CourseStatsOut


# --- Students ---


class PurchasedCourseOut(CamelModel):
    course: CourseSummaryOut
    purchase_date: datetime
    amount: Money


class StudentRollupOut(CamelModel):
    student: StudentOut
    courses: list[PurchasedCourseOut]
    total_spent: Money
    courses_completed: int
    average_progress: float


class RegistrationTrendOut(CamelModel):
    year: int
    month: int
    label: str
    student_count: int


class StudentStatsOut(CamelModel):
    average_spending: Money
    highest_spender: StudentRollupOut | None
    total_revenue: Money


class StudentsOut(CamelModel):
    total_students: int
    top_students: list[StudentRollupOut]
    all_students: list[StudentRollupOut]
    registration_trends: list[RegistrationTrendOut]
    stats: StudentStatsOut


# --- Student detail ---


class EstimatedIntOut(CamelModel):
    value: int
    estimated: bool
    basis: str


class StudentDetailStatsOut(CamelModel):
    total_courses: int
    completed_courses: int
    in_progress_courses: int
    not_started_courses: int
    total_spent: Money
    total_lectures_watched: int
    average_progress: float
    total_watch_time: EstimatedIntOut  # minutes


class TrendPointOut(CamelModel):
    date: str
    progress: float
    estimated: bool


class ActivityEventOut(CamelModel):
    type: str
    description: str
    timestamp: datetime
    course: CourseSummaryOut
    estimated: bool


class StudentDetailOut(CamelModel):
    student: StudentOut
    purchased_courses: list[PurchasedCourseOut]
    progress_data: list[ProgressOut]
    stats: StudentDetailStatsOut
    completion_trends: list[TrendPointOut]
    activity_timeline: list[ActivityEventOut]
