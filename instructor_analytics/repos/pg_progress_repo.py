"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

from collections.abc import Collection
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from instructor_analytics.db.tables import CourseProgressRow
from instructor_analytics.models.progress import CourseProgress, LectureProgress


class PgProgressRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_for_courses(
        self,
        course_ids: Collection[UUID],
        *,
        user_id: UUID | None = None,
    ) -> list[CourseProgress]:
        if not course_ids:
            return []
        stmt = select(CourseProgressRow).where(
            CourseProgressRow.course_id.in_(list(course_ids))
        )
        if user_id is not None:
            stmt = stmt.where(CourseProgressRow.user_id == user_id)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_progress(row) for row in rows]


def _row_to_progress(row: CourseProgressRow) -> CourseProgress:
    # JSONB entries come from the marketplace; a malformed entry raises
    # KeyError here and surfaces as an aggregate failure upstream.
    lectures = tuple(
        LectureProgress(
            lecture_id=str(entry["lecture_id"]),
            viewed=bool(entry.get("viewed")),
        )
        for entry in (row.lecture_progress or [])
    )
    return CourseProgress(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        lecture_progress=lectures,
        completed=row.completed,
        updated_at=row.updated_at,
    )
