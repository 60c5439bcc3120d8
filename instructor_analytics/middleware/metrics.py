"""HTTP request metrics.

Labels use the matched route template (`/api/v1/analytics/course/{course_id}`)
so each course or student id does not become its own time series.  Requests
no route matched are labelled with their raw path.  /metrics itself is not
counted.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from instructor_analytics.core.metrics import (
    ACTIVE_REQUESTS,
    REQUEST_COUNT,
    REQUEST_DURATION,
)

_UNINSTRUMENTED = frozenset({"/metrics"})


def _endpoint_label(request: Request) -> str:
    # The router stores the matched route in scope during call_next.
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _observe(request: Request, status_code: int, started: float) -> None:
    endpoint = _endpoint_label(request)
    REQUEST_COUNT.labels(
        method=request.method, endpoint=endpoint, status_code=str(status_code)
    ).inc()
    REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(
        time.monotonic() - started
    )


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in _UNINSTRUMENTED:
            return await call_next(request)

        started = time.monotonic()
        status_code = 500  # unless a response comes back
        with ACTIVE_REQUESTS.track_inprogress():
            try:
                response = await call_next(request)
                status_code = response.status_code
                return response
            finally:
                _observe(request, status_code, started)
