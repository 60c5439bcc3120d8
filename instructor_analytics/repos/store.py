from __future__ import annotations

from dataclasses import dataclass

from instructor_analytics.repos.course_repo import CourseRepo
from instructor_analytics.repos.progress_repo import ProgressRepo
from instructor_analytics.repos.purchase_repo import PurchaseRepo
from instructor_analytics.repos.user_repo import UserRepo


@dataclass(frozen=True, slots=True)
class RecordStore:
    """The four read-only record sources analytics draws from."""

    users: UserRepo
    courses: CourseRepo
    purchases: PurchaseRepo
    progress: ProgressRepo
