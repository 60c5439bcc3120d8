"""Per-student rollups over an instructor's completed purchases.

Two passes:

  1. Fold completed purchases (oldest first) into one StudentRollup per
     purchaser, accumulating the purchased courses and total spend.
  2. For every student, fetch their progress records inside the scope and
     derive coursesCompleted and averageProgress.  These reads are
     independent, so they fan out concurrently under a semaphore; one
     failed read cancels the rest.

The final list is ranked by total spend, highest first, with the student
id as a stable tie-breaker.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from uuid import UUID

from instructor_analytics.core.clock import as_utc
from instructor_analytics.models.analytics import (
    PurchasedCourse,
    StudentRef,
    StudentRollup,
)
from instructor_analytics.models.progress import CourseProgress
from instructor_analytics.models.purchase import Purchase
from instructor_analytics.models.user import User
from instructor_analytics.repos.progress_repo import ProgressRepo
from instructor_analytics.services.scope import InstructorScope
from instructor_analytics.services.tasks import gather_all

logger = logging.getLogger(__name__)

TOP_STUDENTS = 10


def summarize_progress(records: Iterable[CourseProgress]) -> tuple[int, float]:
    """Return (completed count, average percent complete) for the records.

    A completed record counts as 100; otherwise viewed/total lectures.
    No records means an average of 0.
    """
    completed = 0
    total = 0.0
    count = 0
    for record in records:
        count += 1
        if record.completed:
            completed += 1
        total += record.percent_complete()
    return completed, (total / count if count else 0.0)


def fold_purchases(
    scope: InstructorScope,
    purchases: Iterable[Purchase],
    users: Mapping[UUID, User],
) -> dict[UUID, StudentRollup]:
    rollups: dict[UUID, StudentRollup] = {}
    for purchase in sorted(purchases, key=lambda p: (as_utc(p.created_at), p.id)):
        if not scope.owns(purchase.course_id):
            continue
        user = users.get(purchase.user_id)
        if user is None:
            logger.warning(
                "Skipping purchase=%s: purchaser user=%s not found",
                purchase.id,
                purchase.user_id,
            )
            continue

        rollup = rollups.get(user.id)
        if rollup is None:
            rollup = StudentRollup(student=StudentRef.of(user))
            rollups[user.id] = rollup

        rollup.courses.append(
            PurchasedCourse(
                course=scope.ref(purchase.course_id),
                purchase_date=purchase.created_at,
                amount=purchase.amount,
            )
        )
        rollup.total_spent += purchase.amount
    return rollups


def rank(rollups: Iterable[StudentRollup]) -> list[StudentRollup]:
    return sorted(rollups, key=lambda r: (-r.total_spent, r.student.id))


async def build_rollups(
    scope: InstructorScope,
    purchases: Iterable[Purchase],
    users: Mapping[UUID, User],
    progress_repo: ProgressRepo,
    *,
    max_concurrency: int,
) -> list[StudentRollup]:
    rollups = fold_purchases(scope, purchases, users)
    if not rollups:
        return []

    semaphore = asyncio.Semaphore(max_concurrency)
    course_ids = scope.course_ids

    async def _fill(student_id: UUID, rollup: StudentRollup) -> None:
        async with semaphore:
            records = await progress_repo.list_for_courses(
                course_ids, user_id=student_id
            )
        rollup.courses_completed, rollup.average_progress = summarize_progress(
            records
        )

    await gather_all(*(_fill(sid, r) for sid, r in rollups.items()))

    return rank(rollups.values())
