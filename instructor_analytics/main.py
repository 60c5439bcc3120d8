"""ASGI entry point: `uvicorn instructor_analytics.main:app`."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from instructor_analytics.api import analytics, health, metrics_endpoint
from instructor_analytics.core.config import SETTINGS
from instructor_analytics.core.logging import setup_logging
from instructor_analytics.db.engine import lifespan_db
from instructor_analytics.db.redis import lifespan_redis
from instructor_analytics.middleware.metrics import MetricsMiddleware
from instructor_analytics.middleware.request_context import RequestContextMiddleware

setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    async with lifespan_db(), lifespan_redis():
        logger.info(
            "instructor-analytics ready env=%s timeout=%.1fs concurrency=%d",
            SETTINGS.app_env,
            SETTINGS.analytics_timeout_seconds,
            SETTINGS.analytics_max_concurrency,
        )
        yield


app = FastAPI(
    title="instructor-analytics",
    summary="Revenue, completion and engagement analytics for course instructors",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url=None,
)

# The dashboard is served from another origin and only ever reads.
if SETTINGS.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(SETTINGS.cors_origins),
        allow_methods=["GET"],
        allow_headers=["Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
    )

# Added last, runs first: the request id is set before metrics are taken.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

analytics.install_error_handlers(app)
app.include_router(health.router)
app.include_router(metrics_endpoint.router)
app.include_router(analytics.router)
