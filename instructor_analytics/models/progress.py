from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class LectureProgress:
    lecture_id: str
    viewed: bool = False


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """One learner's tracking record for one course.

    `completed` is set by the player and is not guaranteed to agree with
    `lecture_progress`; readers derive partial completion from the
    lecture entries instead of trusting either one blindly.
    """

    id: UUID
    user_id: UUID
    course_id: UUID
    lecture_progress: tuple[LectureProgress, ...] = ()
    completed: bool = False
    updated_at: datetime | None = None

    @property
    def viewed_lectures(self) -> tuple[LectureProgress, ...]:
        return tuple(lp for lp in self.lecture_progress if lp.viewed)

    @property
    def viewed_count(self) -> int:
        return len(self.viewed_lectures)

    @property
    def has_activity(self) -> bool:
        # Presence of any tracking entry counts, viewed or not.
        return len(self.lecture_progress) > 0

    def percent_complete(self) -> float:
        """100 when completed, else viewed/total x 100 (0 with no lectures)."""
        if self.completed:
            return 100.0
        total = len(self.lecture_progress)
        if total == 0:
            return 0.0
        return self.viewed_count / total * 100

    @staticmethod
    def new(
        *,
        user_id: UUID,
        course_id: UUID,
        lecture_progress: tuple[LectureProgress, ...] = (),
        completed: bool = False,
        updated_at: datetime | None = None,
    ) -> CourseProgress:
        return CourseProgress(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            lecture_progress=lecture_progress,
            completed=completed,
            updated_at=updated_at or datetime.now(UTC),
        )
