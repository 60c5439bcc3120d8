"""Instructor analytics endpoints.

  GET /api/v1/analytics/dashboard
  GET /api/v1/analytics/course/{course_id}
  GET /api/v1/analytics/students
  GET /api/v1/analytics/student/{student_id}

All four require an instructor (or admin) token; the token subject is the
instructor whose courses scope the query.  Service errors become envelope
responses through the handlers registered by `install_error_handlers`.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from instructor_analytics.api import assembler
from instructor_analytics.api.dependencies import (
    current_instructor_id,
    get_analytics_service,
)
from instructor_analytics.api.ratelimit import require_rate_limit
from instructor_analytics.api.schemas import (
    CourseAnalyticsOut,
    DashboardOut,
    Envelope,
    ErrorEnvelope,
    StudentDetailOut,
    StudentsOut,
)
from instructor_analytics.services.analytics_service import AnalyticsService
from instructor_analytics.services.errors import (
    AggregateFailureError,
    AnalyticsNotFoundError,
)

router = APIRouter(
    prefix="/api/v1/analytics",
    tags=["analytics"],
    dependencies=[Depends(require_rate_limit())],
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorEnvelope},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorEnvelope},
    },
)

InstructorId = Annotated[UUID, Depends(current_instructor_id)]
Service = Annotated[AnalyticsService, Depends(get_analytics_service)]


@router.get("/dashboard", response_model=Envelope[DashboardOut])
async def get_dashboard(
    instructor_id: InstructorId, service: Service
) -> Envelope[DashboardOut]:
    result = await service.dashboard(instructor_id)
    return Envelope[DashboardOut](data=assembler.dashboard(result))


@router.get("/course/{course_id}", response_model=Envelope[CourseAnalyticsOut])
async def get_course_analytics(
    course_id: UUID, instructor_id: InstructorId, service: Service
) -> Envelope[CourseAnalyticsOut]:
    result = await service.course_analytics(instructor_id, course_id)
    return Envelope[CourseAnalyticsOut](data=assembler.course_analytics(result))


@router.get("/students", response_model=Envelope[StudentsOut])
async def get_student_analytics(
    instructor_id: InstructorId, service: Service
) -> Envelope[StudentsOut]:
    result = await service.student_analytics(instructor_id)
    return Envelope[StudentsOut](data=assembler.students(result))


@router.get("/student/{student_id}", response_model=Envelope[StudentDetailOut])
async def get_student_detail(
    student_id: UUID, instructor_id: InstructorId, service: Service
) -> Envelope[StudentDetailOut]:
    result = await service.student_detail(instructor_id, student_id)
    return Envelope[StudentDetailOut](data=assembler.student_detail(result))


# ---------------------------------------------------------------------------
# Error envelopes
# ---------------------------------------------------------------------------


def _envelope(status_code: int, message: str) -> JSONResponse:
    body = ErrorEnvelope(message=message).model_dump(by_alias=True)
    return JSONResponse(status_code=status_code, content=body)


async def _not_found(_request: Request, exc: Exception) -> JSONResponse:
    return _envelope(status.HTTP_404_NOT_FOUND, str(exc))


async def _aggregate_failure(_request: Request, exc: Exception) -> JSONResponse:
    # The cause was already logged with its traceback by the service.
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AnalyticsNotFoundError, _not_found)
    app.add_exception_handler(AggregateFailureError, _aggregate_failure)
