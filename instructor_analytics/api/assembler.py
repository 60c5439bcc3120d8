"""Shape service results into response schemas.

Pure mapping, no computation: every number on the wire was produced by
the service layer.
"""

from __future__ import annotations

from instructor_analytics.api.schemas import (
    ActivityEventOut,
    CourseAnalyticsOut,
    CourseCompletionOut,
    CourseStatsOut,
    CourseSummaryOut,
    DailyEnrollmentOut,
    DashboardOut,
    EngagementOut,
    EnrollmentOut,
    EstimatedIntOut,
    LectureProgressOut,
    LectureStatOut,
    MonthlyRevenueOut,
    OverviewOut,
    ProgressOut,
    PurchasedCourseOut,
    RegistrationTrendOut,
    StudentDetailOut,
    StudentDetailStatsOut,
    StudentOut,
    StudentRollupOut,
    StudentsOut,
    StudentStatsOut,
    TopCourseOut,
    TrendPointOut,
)
from instructor_analytics.models.analytics import (
    CourseAnalyticsResult,
    CourseRef,
    DashboardResult,
    EnrollmentView,
    ProgressView,
    PurchasedCourse,
    StudentDetailResult,
    StudentRef,
    StudentRollup,
    StudentsResult,
)


def course_summary(ref: CourseRef) -> CourseSummaryOut:
    return CourseSummaryOut(
        id=ref.id,
        title=ref.title,
        price=ref.price,
        thumbnail=ref.thumbnail,
        is_published=ref.is_published,
    )


def student(ref: StudentRef) -> StudentOut:
    return StudentOut(
        id=ref.id,
        name=ref.name,
        email=ref.email,
        photo_url=ref.photo_url,
        created_at=ref.created_at,
    )


def optional_student(ref: StudentRef | None) -> StudentOut | None:
    return student(ref) if ref is not None else None


def enrollment(view: EnrollmentView) -> EnrollmentOut:
    return EnrollmentOut(
        id=view.purchase_id,
        course=course_summary(view.course),
        student=optional_student(view.student),
        amount=view.amount,
        created_at=view.purchased_at,
    )


def progress(view: ProgressView) -> ProgressOut:
    return ProgressOut(
        id=view.id,
        course=course_summary(view.course),
        student=optional_student(view.student),
        lecture_progress=[
            LectureProgressOut(lecture_id=lp.lecture_id, viewed=lp.viewed)
            for lp in view.lecture_progress
        ],
        completed=view.completed,
        percent_complete=view.percent_complete,
        updated_at=view.updated_at,
    )


def purchased_course(item: PurchasedCourse) -> PurchasedCourseOut:
    return PurchasedCourseOut(
        course=course_summary(item.course),
        purchase_date=item.purchase_date,
        amount=item.amount,
    )


def rollup(item: StudentRollup) -> StudentRollupOut:
    return StudentRollupOut(
        student=student(item.student),
        courses=[purchased_course(c) for c in item.courses],
        total_spent=item.total_spent,
        courses_completed=item.courses_completed,
        average_progress=item.average_progress,
    )


# ---------------------------------------------------------------------------
# One function per route
# ---------------------------------------------------------------------------


def dashboard(result: DashboardResult) -> DashboardOut:
    o = result.overview
    return DashboardOut(
        overview=OverviewOut(
            total_revenue=o.total_revenue,
            total_sales=o.total_sales,
            total_students=o.total_students,
            total_courses=o.total_courses,
            published_courses=o.published_courses,
        ),
        monthly_revenue=[
            MonthlyRevenueOut(month=p.month, revenue=p.revenue, sales=p.sales)
            for p in result.monthly_revenue
        ],
        top_courses=[
            TopCourseOut(
                course_id=c.course_id,
                course_title=c.course_title,
                course_price=c.course_price,
                revenue=c.revenue,
                sales=c.sales,
            )
            for c in result.top_courses
        ],
        recent_enrollments=[enrollment(e) for e in result.recent_enrollments],
        course_completion_data=[
            CourseCompletionOut(
                course=course_summary(s.course),
                enrolled_count=s.enrolled_count,
                completed_count=s.completed_count,
                completion_rate=s.completion_rate,
            )
            for s in result.course_completion
        ],
        student_engagement=[
            EngagementOut(
                course=course_summary(s.course),
                total_students=s.total_students,
                active_students=s.active_students,
                completed_students=s.completed_students,
                engagement_rate=s.engagement_rate,
            )
            for s in result.student_engagement
        ],
        raw_purchases=[enrollment(e) for e in result.raw_purchases],
    )


def course_analytics(result: CourseAnalyticsResult) -> CourseAnalyticsOut:
    return CourseAnalyticsOut(
        course=course_summary(result.course),
        purchases=[enrollment(e) for e in result.purchases],
        progress_data=[progress(p) for p in result.progress],
        lecture_completion={
            lecture_id: LectureStatOut(viewed=stat.viewed, total=stat.total)
            for lecture_id, stat in result.lecture_completion.items()
        },
        daily_enrollments=[
            DailyEnrollmentOut(date=p.date, enrollments=p.enrollments)
            for p in result.daily_enrollments
        ],
        stats=CourseStatsOut(
            total_enrollments=result.stats.total_enrollments,
            total_revenue=result.stats.total_revenue,
            completion_rate=result.stats.completion_rate,
        ),
    )


def students(result: StudentsResult) -> StudentsOut:
    highest = result.stats.highest_spender
    return StudentsOut(
        total_students=result.total_students,
        top_students=[rollup(r) for r in result.top_students],
        all_students=[rollup(r) for r in result.all_students],
        registration_trends=[
            RegistrationTrendOut(
                year=p.year, month=p.month, label=p.label, student_count=p.student_count
            )
            for p in result.registration_trends
        ],
        stats=StudentStatsOut(
            average_spending=result.stats.average_spending,
            highest_spender=rollup(highest) if highest is not None else None,
            total_revenue=result.stats.total_revenue,
        ),
    )


def student_detail(result: StudentDetailResult) -> StudentDetailOut:
    s = result.stats
    return StudentDetailOut(
        student=student(result.student),
        purchased_courses=[purchased_course(c) for c in result.purchased_courses],
        progress_data=[progress(p) for p in result.progress],
        stats=StudentDetailStatsOut(
            total_courses=s.total_courses,
            completed_courses=s.completed_courses,
            in_progress_courses=s.in_progress_courses,
            not_started_courses=s.not_started_courses,
            total_spent=s.total_spent,
            total_lectures_watched=s.total_lectures_watched,
            average_progress=s.average_progress,
            total_watch_time=EstimatedIntOut(
                value=s.total_watch_time.value,
                estimated=s.total_watch_time.estimated,
                basis=s.total_watch_time.basis,
            ),
        ),
        completion_trends=[
            TrendPointOut(date=p.date, progress=p.progress, estimated=p.estimated)
            for p in result.completion_trends
        ],
        activity_timeline=[
            ActivityEventOut(
                type=e.type,
                description=e.description,
                timestamp=e.timestamp,
                course=course_summary(e.course),
                estimated=e.estimated,
            )
            for e in result.activity_timeline
        ],
    )
