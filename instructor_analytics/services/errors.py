from __future__ import annotations

# Generic client-facing messages; internals never leak into a response.
FAILURE_MESSAGES = {
    "dashboard": "Failed to fetch dashboard analytics",
    "course": "Failed to fetch course analytics",
    "students": "Failed to fetch student analytics",
    "student_detail": "Failed to fetch student detail analytics",
}


class AnalyticsError(Exception):
    pass


class AnalyticsNotFoundError(AnalyticsError):
    """The scoping entity is missing or outside the instructor's scope."""


class NotFoundOrUnauthorizedError(AnalyticsNotFoundError):
    def __init__(self) -> None:
        super().__init__("Course not found or unauthorized")


class StudentNotFoundError(AnalyticsNotFoundError):
    def __init__(self) -> None:
        super().__init__("Student not found")


class AggregateFailureError(AnalyticsError):
    """Reading or deriving failed; the whole operation is abandoned."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(FAILURE_MESSAGES.get(operation, "Failed to fetch analytics"))
