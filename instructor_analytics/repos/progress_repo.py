from __future__ import annotations

from collections.abc import Collection
from typing import Protocol
from uuid import UUID

from instructor_analytics.models.progress import CourseProgress


class ProgressRepo(Protocol):
    async def list_for_courses(
        self,
        course_ids: Collection[UUID],
        *,
        user_id: UUID | None = None,
    ) -> list[CourseProgress]: ...


class InMemoryProgressRepo:
    def __init__(self) -> None:
        self._store: list[CourseProgress] = []

    async def list_for_courses(
        self,
        course_ids: Collection[UUID],
        *,
        user_id: UUID | None = None,
    ) -> list[CourseProgress]:
        if not course_ids:
            return []
        wanted = set(course_ids)
        return [
            p
            for p in self._store
            if p.course_id in wanted and (user_id is None or p.user_id == user_id)
        ]

    def add(self, progress: CourseProgress) -> None:
        self._store.append(progress)

    def clear(self) -> None:
        self._store.clear()
