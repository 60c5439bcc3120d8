"""Prometheus metrics, all declared here and updated where the work happens.

The HTTP series come from MetricsMiddleware.  The analytics series come
from AnalyticsService and split each operation by outcome, so a slow or
failing aggregation is distinguishable from an ownership 404.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# HTTP

REQUEST_COUNT = Counter(
    "http_requests_total",
    "HTTP requests by method, route template and status",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "HTTP requests in flight",
)

# Analytics

ANALYTICS_QUERIES = Counter(
    "analytics_queries_total",
    "Analytics operations by outcome",
    # operation: dashboard|course|students|student_detail
    # outcome:   ok|not_found|failed|timeout
    ["operation", "outcome"],
)

ANALYTICS_DURATION = Histogram(
    "analytics_query_duration_seconds",
    "Wall-clock time spent computing one analytics response",
    ["operation"],
    # Aggregations fan out over courses and students, so the tail is
    # longer than a plain CRUD read.
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Analytics requests rejected with 429",
)
