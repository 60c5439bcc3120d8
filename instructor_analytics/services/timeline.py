"""Per-student detail: counts, estimated watch time, trend curve, activity feed.

Three outputs here are synthetic and are tagged as such:

- total_watch_time: viewed lectures x WATCH_MINUTES_PER_LECTURE.  Lecture
  durations are not stored upstream, so this is a heuristic.
- completion trend: a straight line from (average - TREND_SPREAD) up to the
  current average over the last TREND_DAYS days.  Only the current value
  exists; there are no daily snapshots to draw a real history from.
- lecture_completed events: per-lecture view times are not stored, so the
  last few viewed lectures are placed LECTURE_SPACING apart, ending at the
  progress record's last update.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from uuid import UUID

from instructor_analytics.core.clock import as_utc
from instructor_analytics.models.analytics import (
    COURSE_COMPLETED,
    COURSE_PURCHASED,
    LECTURE_COMPLETED,
    ActivityEvent,
    Estimated,
    StudentDetailStats,
    TrendPoint,
)
from instructor_analytics.models.money import ZERO
from instructor_analytics.models.progress import CourseProgress
from instructor_analytics.models.purchase import Purchase
from instructor_analytics.services.scope import InstructorScope
from instructor_analytics.services.student_rollup import summarize_progress

logger = logging.getLogger(__name__)

WATCH_MINUTES_PER_LECTURE = 10
WATCH_TIME_BASIS = "viewed_lectures_x_10_minutes"

TREND_DAYS = 30
TREND_SPREAD = 30.0

LECTURE_SAMPLE_SIZE = 5
LECTURE_SPACING = timedelta(days=2)
TIMELINE_LIMIT = 20

# Tie-break order for events sharing a timestamp.
_KIND_RANK = {COURSE_COMPLETED: 0, LECTURE_COMPLETED: 1, COURSE_PURCHASED: 2}


def detail_stats(
    student_id: UUID,
    purchases: Sequence[Purchase],
    progress: Sequence[CourseProgress],
) -> StudentDetailStats:
    total_courses = len({p.course_id for p in purchases})
    completed, average = summarize_progress(progress)
    in_progress = sum(1 for p in progress if not p.completed and p.viewed_count > 0)
    watched = sum(p.viewed_count for p in progress)

    not_started = total_courses - completed - in_progress
    if not_started < 0:
        # Progress exists for courses without a completed purchase.
        logger.warning(
            "Inconsistent progress for student=%s: courses=%d completed=%d "
            "in_progress=%d; clamping not_started to 0",
            student_id,
            total_courses,
            completed,
            in_progress,
        )
        not_started = 0

    return StudentDetailStats(
        total_courses=total_courses,
        completed_courses=completed,
        in_progress_courses=in_progress,
        not_started_courses=not_started,
        total_spent=sum((p.amount for p in purchases), ZERO),
        total_lectures_watched=watched,
        average_progress=average,
        total_watch_time=Estimated(
            value=watched * WATCH_MINUTES_PER_LECTURE, basis=WATCH_TIME_BASIS
        ),
    )


def completion_trend(average_progress: float, today: date) -> list[TrendPoint]:
    """TREND_DAYS points, oldest first, ending at today with the current value."""
    start = max(0.0, average_progress - TREND_SPREAD)
    span = TREND_DAYS - 1
    points = []
    for i in range(TREND_DAYS):
        day = today - timedelta(days=span - i)
        value = start + (average_progress - start) * i / span
        points.append(TrendPoint(date=day.isoformat(), progress=round(value, 2)))
    return points


def activity_timeline(
    scope: InstructorScope,
    purchases: Iterable[Purchase],
    progress: Iterable[CourseProgress],
) -> list[ActivityEvent]:
    events: list[ActivityEvent] = []

    for purchase in purchases:
        course = scope.ref(purchase.course_id)
        events.append(
            ActivityEvent(
                type=COURSE_PURCHASED,
                description=f"Purchased {course.title}",
                timestamp=as_utc(purchase.created_at),
                course=course,
            )
        )

    for record in progress:
        if record.updated_at is None:
            logger.debug("Progress %s has no update time; no events emitted", record.id)
            continue
        course = scope.ref(record.course_id)
        anchor = as_utc(record.updated_at)

        if record.completed:
            events.append(
                ActivityEvent(
                    type=COURSE_COMPLETED,
                    description=f"Completed {course.title}",
                    timestamp=anchor,
                    course=course,
                )
            )

        sample = record.viewed_lectures[-LECTURE_SAMPLE_SIZE:]
        for offset, lecture in enumerate(reversed(sample)):
            events.append(
                ActivityEvent(
                    type=LECTURE_COMPLETED,
                    description=(
                        f"Watched lecture {lecture.lecture_id} in {course.title}"
                    ),
                    timestamp=anchor - offset * LECTURE_SPACING,
                    course=course,
                    estimated=True,
                )
            )

    events.sort(key=_event_sort_key)
    return events[:TIMELINE_LIMIT]


def _event_sort_key(event: ActivityEvent) -> tuple[float, int, str, str]:
    # Newest first.
    return (
        -event.timestamp.timestamp(),
        _KIND_RANK[event.type],
        str(event.course.id),
        event.description,
    )
