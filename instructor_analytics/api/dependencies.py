from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from instructor_analytics.core.config import SETTINGS
from instructor_analytics.db.engine import async_session_factory
from instructor_analytics.models.principal import Principal
from instructor_analytics.repos.course_repo import InMemoryCourseRepo
from instructor_analytics.repos.pg_course_repo import PgCourseRepo
from instructor_analytics.repos.pg_progress_repo import PgProgressRepo
from instructor_analytics.repos.pg_purchase_repo import PgPurchaseRepo
from instructor_analytics.repos.pg_user_repo import PgUserRepo
from instructor_analytics.repos.progress_repo import InMemoryProgressRepo
from instructor_analytics.repos.purchase_repo import InMemoryPurchaseRepo
from instructor_analytics.repos.store import RecordStore
from instructor_analytics.repos.user_repo import InMemoryUserRepo
from instructor_analytics.services import token_service
from instructor_analytics.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is a 401 with WWW-Authenticate,
# the same as a bad token.
bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Record store
# ---------------------------------------------------------------------------
# In-memory repos always exist so tests and the demo script can seed them.
# With DATABASE_URL set, the service reads PostgreSQL instead.

user_repo = InMemoryUserRepo()
course_repo = InMemoryCourseRepo()
purchase_repo = InMemoryPurchaseRepo()
progress_repo = InMemoryProgressRepo()

if async_session_factory is not None:
    record_store = RecordStore(
        users=PgUserRepo(async_session_factory),
        courses=PgCourseRepo(async_session_factory),
        purchases=PgPurchaseRepo(async_session_factory),
        progress=PgProgressRepo(async_session_factory),
    )
else:
    record_store = RecordStore(
        users=user_repo,
        courses=course_repo,
        purchases=purchase_repo,
        progress=progress_repo,
    )

analytics_service = AnalyticsService(
    record_store,
    timeout_seconds=SETTINGS.analytics_timeout_seconds,
    max_concurrency=SETTINGS.analytics_max_concurrency,
)


def get_analytics_service() -> AnalyticsService:
    """Overridable in tests via app.dependency_overrides."""
    return analytics_service


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_principal(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Principal:
    """Verify the bearer token and return the caller."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        claims = token_service.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.info("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None
    return Principal.from_claims(claims)


def current_instructor_id(
    principal: Annotated[Principal, Depends(require_principal)],
) -> UUID:
    """The instructor whose courses scope every analytics query.

    403 for callers without an analytics role, and for subjects that are
    not user ids (service accounts), since those own no courses.
    """
    if not principal.can_read_analytics:
        logger.warning(
            "Analytics denied: subject=%s roles=%s",
            principal.subject,
            sorted(principal.roles),
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    instructor_id = principal.user_id
    if instructor_id is None:
        logger.warning(
            "Analytics denied: subject %r is not a user id", principal.subject
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token subject is not a valid user id",
        )
    return instructor_id
