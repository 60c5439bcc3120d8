"""Instructor analytics: the four read-side aggregations.

Each public method is one operation and runs inside `_run`, which is the
operation boundary:

  - the whole computation is bounded by ANALYTICS_TIMEOUT_SECONDS
  - not-found errors pass through untouched (they become 404s)
  - anything else, a timeout included, is logged with its traceback and
    re-raised as AggregateFailureError chained to the cause, so the
    caller either gets a complete result or nothing
  - outcome and duration are recorded in Prometheus

Inside an operation, reads that do not depend on each other run
concurrently through `gather_all`: the first failing read cancels its
siblings, and cancelling the request task cancels every in-flight read.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar
from uuid import UUID

from instructor_analytics.core.clock import as_utc, utcnow
from instructor_analytics.core.metrics import ANALYTICS_DURATION, ANALYTICS_QUERIES
from instructor_analytics.models.analytics import (
    CourseAnalyticsResult,
    CourseStats,
    DashboardResult,
    ProgressView,
    PurchasedCourse,
    StudentDetailResult,
    StudentRef,
    StudentsResult,
    StudentStats,
)
from instructor_analytics.models.money import CENT, ZERO
from instructor_analytics.repos.store import RecordStore
from instructor_analytics.services import aggregates, timeline
from instructor_analytics.services.errors import (
    AggregateFailureError,
    AnalyticsNotFoundError,
    NotFoundOrUnauthorizedError,
    StudentNotFoundError,
)
from instructor_analytics.services.scope import InstructorScope, resolve_scope
from instructor_analytics.services.student_rollup import TOP_STUDENTS, build_rollups
from instructor_analytics.services.tasks import gather_all

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AnalyticsService:
    def __init__(
        self,
        store: RecordStore,
        *,
        timeout_seconds: float,
        max_concurrency: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._timeout = timeout_seconds
        self._max_concurrency = max_concurrency
        self._clock = clock

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def dashboard(self, instructor_id: UUID) -> DashboardResult:
        return await self._run(
            "dashboard", instructor_id, lambda: self._dashboard(instructor_id)
        )

    async def course_analytics(
        self, instructor_id: UUID, course_id: UUID
    ) -> CourseAnalyticsResult:
        return await self._run(
            "course", instructor_id, lambda: self._course(instructor_id, course_id)
        )

    async def student_analytics(self, instructor_id: UUID) -> StudentsResult:
        return await self._run(
            "students", instructor_id, lambda: self._students(instructor_id)
        )

    async def student_detail(
        self, instructor_id: UUID, student_id: UUID
    ) -> StudentDetailResult:
        return await self._run(
            "student_detail",
            instructor_id,
            lambda: self._student_detail(instructor_id, student_id),
        )

    # ------------------------------------------------------------------
    # Operation boundary
    # ------------------------------------------------------------------

    async def _run(
        self,
        operation: str,
        instructor_id: UUID,
        compute: Callable[[], Awaitable[T]],
    ) -> T:
        context = {"operation": operation, "instructor_id": str(instructor_id)}
        start = time.perf_counter()
        outcome = "failed"
        try:
            async with asyncio.timeout(self._timeout):
                result = await compute()
            outcome = "ok"
            return result
        except AnalyticsNotFoundError as e:
            outcome = "not_found"
            logger.info("Analytics %s: %s", operation, e, extra=context)
            raise
        except TimeoutError as e:
            outcome = "timeout"
            logger.error(
                "Analytics %s timed out after %.1fs",
                operation,
                self._timeout,
                extra=context,
            )
            raise AggregateFailureError(operation) from e
        except Exception as e:
            logger.exception("Analytics %s failed", operation, extra=context)
            raise AggregateFailureError(operation) from e
        finally:
            elapsed = time.perf_counter() - start
            ANALYTICS_QUERIES.labels(operation=operation, outcome=outcome).inc()
            ANALYTICS_DURATION.labels(operation=operation).observe(elapsed)
            logger.debug(
                "Analytics %s outcome=%s in %.1fms",
                operation,
                outcome,
                elapsed * 1000,
                extra=context,
            )

    def _now(self) -> datetime:
        return as_utc(self._clock())

    # ------------------------------------------------------------------
    # Computations
    # ------------------------------------------------------------------

    async def _dashboard(self, instructor_id: UUID) -> DashboardResult:
        scope = await resolve_scope(self._store.courses, instructor_id)
        purchases, progress = await gather_all(
            self._store.purchases.list_completed(scope.course_ids),
            self._store.progress.list_for_courses(scope.course_ids),
        )
        users = await self._store.users.get_many({p.user_id for p in purchases})

        ordered = sorted(purchases, key=aggregates.purchase_order)
        enrollments = [aggregates.enrollment_view(scope, p, users) for p in ordered]
        recent = enrollments[-aggregates.RECENT_ENROLLMENTS :]
        recent.reverse()

        return DashboardResult(
            overview=aggregates.overview(scope, ordered),
            monthly_revenue=aggregates.monthly_revenue(ordered, self._now().year),
            top_courses=aggregates.top_courses(scope, ordered),
            recent_enrollments=recent,
            course_completion=aggregates.course_completion(scope, progress),
            student_engagement=aggregates.student_engagement(scope, progress),
            raw_purchases=enrollments,
        )

    async def _course(
        self, instructor_id: UUID, course_id: UUID
    ) -> CourseAnalyticsResult:
        course = await self._store.courses.get_by_id(course_id)
        if course is None or course.creator_id != instructor_id:
            raise NotFoundOrUnauthorizedError()

        scope = InstructorScope.of(instructor_id, [course])
        purchases, progress = await gather_all(
            self._store.purchases.list_completed(scope.course_ids),
            self._store.progress.list_for_courses(scope.course_ids),
        )
        users = await self._store.users.get_many(
            {p.user_id for p in purchases} | {r.user_id for r in progress}
        )

        ordered = sorted(purchases, key=aggregates.purchase_order)
        progress_views = []
        for record in sorted(progress, key=lambda r: r.id):
            user = users.get(record.user_id)
            progress_views.append(
                ProgressView.of(
                    record,
                    scope.ref(record.course_id),
                    StudentRef.of(user) if user is not None else None,
                )
            )

        completed = sum(1 for r in progress if r.completed)
        return CourseAnalyticsResult(
            course=scope.ref(course.id),
            purchases=[aggregates.enrollment_view(scope, p, users) for p in ordered],
            progress=progress_views,
            lecture_completion=aggregates.lecture_completion(progress),
            daily_enrollments=aggregates.daily_enrollments(
                ordered, self._now().date()
            ),
            stats=CourseStats(
                total_enrollments=len(ordered),
                total_revenue=sum((p.amount for p in ordered), ZERO),
                completion_rate=aggregates.percent(
                    completed,
                    len(progress),
                    label=f"progress completion rate for course={course.id}",
                ),
            ),
        )

    async def _students(self, instructor_id: UUID) -> StudentsResult:
        scope = await resolve_scope(self._store.courses, instructor_id)
        purchases = await self._store.purchases.list_completed(scope.course_ids)
        users = await self._store.users.get_many({p.user_id for p in purchases})

        rollups = await build_rollups(
            scope,
            purchases,
            users,
            self._store.progress,
            max_concurrency=self._max_concurrency,
        )
        total_revenue = sum((r.total_spent for r in rollups), ZERO)

        return StudentsResult(
            total_students=len(rollups),
            top_students=rollups[:TOP_STUDENTS],
            all_students=rollups,
            registration_trends=aggregates.registration_trends(
                (p for p in purchases if p.user_id in users), self._now()
            ),
            stats=StudentStats(
                average_spending=(
                    (total_revenue / len(rollups)).quantize(CENT) if rollups else ZERO
                ),
                highest_spender=rollups[0] if rollups else None,
                total_revenue=total_revenue,
            ),
        )

    async def _student_detail(
        self, instructor_id: UUID, student_id: UUID
    ) -> StudentDetailResult:
        user, scope = await gather_all(
            self._store.users.get_by_id(student_id),
            resolve_scope(self._store.courses, instructor_id),
        )
        if user is None:
            raise StudentNotFoundError()

        purchases, progress = await gather_all(
            self._store.purchases.list_completed(scope.course_ids, user_id=student_id),
            self._store.progress.list_for_courses(scope.course_ids, user_id=student_id),
        )

        student = StudentRef.of(user)
        ordered = sorted(purchases, key=aggregates.purchase_order)
        progress = sorted(progress, key=lambda r: (r.course_id, r.id))
        stats = timeline.detail_stats(student_id, ordered, progress)

        return StudentDetailResult(
            student=student,
            purchased_courses=[
                PurchasedCourse(
                    course=scope.ref(p.course_id),
                    purchase_date=p.created_at,
                    amount=p.amount,
                )
                for p in ordered
            ],
            progress=[
                ProgressView.of(r, scope.ref(r.course_id), student) for r in progress
            ],
            stats=stats,
            completion_trends=timeline.completion_trend(
                stats.average_progress, self._now().date()
            ),
            activity_timeline=timeline.activity_timeline(scope, ordered, progress),
        )
