"""Prometheus scrape endpoint.

Plain-text exposition format, not JSON.  The analytics series to watch:

  analytics_queries_total{operation="dashboard",outcome="timeout"}
  analytics_query_duration_seconds_bucket{operation="students",le="1.0"}

Not behind auth; restrict it at the network layer in production.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
