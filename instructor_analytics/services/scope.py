"""Instructor scope: the access-control boundary for every analytics query.

The scope is resolved once per request and passed to every sub-query as
the set of course ids they may touch.  Repositories never filter by
creator themselves, so a new query path cannot forget the ownership check:
it simply has no course ids to ask about unless it was handed a scope.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from instructor_analytics.models.analytics import CourseRef
from instructor_analytics.models.course import Course
from instructor_analytics.repos.course_repo import CourseRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, eq=False)
class InstructorScope:
    instructor_id: UUID
    courses: tuple[Course, ...]  # ordered by course id
    _by_id: dict[UUID, Course]
    _refs: dict[UUID, CourseRef]

    @staticmethod
    def of(instructor_id: UUID, courses: Iterable[Course]) -> InstructorScope:
        owned = tuple(
            sorted(
                (c for c in courses if c.creator_id == instructor_id),
                key=lambda c: c.id,
            )
        )
        return InstructorScope(
            instructor_id=instructor_id,
            courses=owned,
            _by_id={c.id: c for c in owned},
            _refs={c.id: CourseRef.of(c) for c in owned},
        )

    @property
    def course_ids(self) -> frozenset[UUID]:
        return frozenset(self._by_id)

    def owns(self, course_id: UUID) -> bool:
        return course_id in self._by_id

    def ref(self, course_id: UUID) -> CourseRef:
        """CourseRef for an in-scope course.  KeyError for anything else."""
        return self._refs[course_id]


async def resolve_scope(courses: CourseRepo, instructor_id: UUID) -> InstructorScope:
    owned = await courses.list_by_creator(instructor_id)
    scope = InstructorScope.of(instructor_id, owned)
    logger.debug(
        "Resolved scope instructor=%s courses=%d", instructor_id, len(scope.courses)
    )
    return scope
