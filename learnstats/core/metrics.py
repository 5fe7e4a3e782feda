"""Prometheus metric inventory for learnstats.

Every metric the service exports is declared here; the modules that own
the behaviour import and update them.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, route and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Dashboards fan out to several store reads; the upper buckets are
    # where guard-less aggregations would land.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Aggregation engine metrics
# ---------------------------------------------------------------------------

QUERY_GUARD_TRIPS = Counter(
    "query_guard_trips_total",
    "Aggregations replaced by a fallback result because input exceeded a threshold",
    ["scope"],  # student_enrollments, teacher_courses, ...
)

LOOKUP_CACHE_OPERATIONS = Counter(
    "lookup_cache_operations_total",
    "Course content lookup cache reads by cache and result",
    ["cache", "result"],  # cache: exercise_ids|exercise_metadata, result: hit|miss
)

PROGRESS_UPDATES = Counter(
    "progress_updates_total",
    "Progress update attempts by outcome",
    ["outcome"],  # success or an ErrorCode value
)

DASHBOARD_CACHE_OPERATIONS = Counter(
    "dashboard_cache_operations_total",
    "Dashboard response cache operations",
    ["operation"],  # hit|miss|invalidate|error
)
