from __future__ import annotations

from typing import Protocol
from uuid import UUID

from instructor_analytics.models.course import Course


class CourseRepo(Protocol):
    async def get_by_id(self, course_id: UUID) -> Course | None: ...
    async def list_by_creator(self, creator_id: UUID) -> list[Course]: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Course] = {}

    async def get_by_id(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    async def list_by_creator(self, creator_id: UUID) -> list[Course]:
        return [c for c in self._by_id.values() if c.creator_id == creator_id]

    def add(self, course: Course) -> None:
        if course.id in self._by_id:
            raise ValueError("course already exists")
        self._by_id[course.id] = course

    def clear(self) -> None:
        self._by_id.clear()
