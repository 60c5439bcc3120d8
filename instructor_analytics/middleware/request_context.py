"""Request ID and completion logging.

Every response carries X-Request-ID.  A client-supplied ID is kept when
it looks like an ID (short, URL-safe characters) so a frontend can
correlate its own traces; anything else is replaced by a fresh UUID
rather than copied into our logs.

The ID is published through `request_id_var` (core/logging.py) for the
lifetime of the request, so every line the dashboard fan-out logs can be
tied back to the request that caused it.
"""

from __future__ import annotations

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from instructor_analytics.core.logging import request_id_var

logger = logging.getLogger(__name__)

_CLIENT_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def _request_id(request: Request) -> str:
    supplied = request.headers.get("x-request-id", "")
    if _CLIENT_ID_PATTERN.fullmatch(supplied):
        return supplied
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = _request_id(request)
        token = request_id_var.set(req_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 1)
            logger.log(
                logging.WARNING if response.status_code >= 500 else logging.INFO,
                "%s %s -> %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            request_id_var.reset(token)
