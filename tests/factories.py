"""Record builders shared by the service and API tests."""

from __future__ import annotations

from datetime import UTC, datetime

from instructor_analytics.models.course import Course
from instructor_analytics.models.progress import CourseProgress, LectureProgress
from instructor_analytics.models.purchase import COMPLETED, Purchase
from instructor_analytics.models.user import User
from instructor_analytics.repos.course_repo import InMemoryCourseRepo
from instructor_analytics.repos.progress_repo import InMemoryProgressRepo
from instructor_analytics.repos.purchase_repo import InMemoryPurchaseRepo
from instructor_analytics.repos.store import RecordStore
from instructor_analytics.repos.user_repo import InMemoryUserRepo
from instructor_analytics.services import token_service

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


def mint_token(sub: str = "test-user", roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=sub, roles=roles)


def make_store() -> RecordStore:
    return RecordStore(
        users=InMemoryUserRepo(),
        courses=InMemoryCourseRepo(),
        purchases=InMemoryPurchaseRepo(),
        progress=InMemoryProgressRepo(),
    )


def add_user(
    store: RecordStore,
    name: str = "Student",
    *,
    roles: tuple[str, ...] = ("user",),
    created_at: datetime = FIXED_NOW,
) -> User:
    user = User.new(
        email=f"{name.replace(' ', '.').lower()}@example.com",
        name=name,
        roles=roles,
        created_at=created_at,
    )
    store.users.add(user)  # type: ignore[attr-defined]
    return user


def add_instructor(store: RecordStore, name: str = "Instructor") -> User:
    return add_user(store, name, roles=("instructor",))


def add_course(
    store: RecordStore,
    creator: User,
    title: str = "Course",
    *,
    price: float = 100.0,
    is_published: bool = True,
    enrolled: tuple[User, ...] = (),
) -> Course:
    course = Course.new(
        title=title,
        creator_id=creator.id,
        price=price,
        is_published=is_published,
        enrolled_students=tuple(u.id for u in enrolled),
    )
    store.courses.add(course)  # type: ignore[attr-defined]
    return course


def add_purchase(
    store: RecordStore,
    course: Course,
    user: User,
    *,
    amount: float | None = None,
    at: datetime = FIXED_NOW,
    status: str = COMPLETED,
) -> Purchase:
    purchase = Purchase.new(
        course_id=course.id,
        user_id=user.id,
        amount=course.price if amount is None else amount,
        status=status,
        created_at=at,
    )
    store.purchases.add(purchase)  # type: ignore[attr-defined]
    return purchase


def add_progress(
    store: RecordStore,
    course: Course,
    user: User,
    *,
    viewed: tuple[str, ...] = (),
    unviewed: tuple[str, ...] = (),
    completed: bool = False,
    at: datetime = FIXED_NOW,
) -> CourseProgress:
    lectures = tuple(LectureProgress(lecture_id=lid, viewed=True) for lid in viewed)
    lectures += tuple(
        LectureProgress(lecture_id=lid, viewed=False) for lid in unviewed
    )
    progress = CourseProgress.new(
        user_id=user.id,
        course_id=course.id,
        lecture_progress=lectures,
        completed=completed,
        updated_at=at,
    )
    store.progress.add(progress)  # type: ignore[attr-defined]
    return progress
