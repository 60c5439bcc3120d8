"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from instructor_analytics.db.tables import CourseRow
from instructor_analytics.models.course import Course
from instructor_analytics.models.money import ZERO


class PgCourseRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, course_id: UUID) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.id == course_id)
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_course(row)

    async def list_by_creator(self, creator_id: UUID) -> list[Course]:
        stmt = select(CourseRow).where(CourseRow.creator_id == creator_id)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_course(row) for row in rows]


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        creator_id=row.creator_id,
        price=row.price if row.price is not None else ZERO,
        thumbnail=row.thumbnail,
        is_published=row.is_published,
        enrolled_students=tuple(row.enrolled_students or ()),
    )
