"""Prometheus metrics inventory.

Every metric the service exposes is defined here.  Other modules import
the one they own and increment it at the point of action; /metrics
renders the lot.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Progress metrics
# ---------------------------------------------------------------------------

LESSON_COMPLETIONS = Counter(
    "lesson_completions_total",
    "Mark-complete attempts by outcome",
    ["result"],  # recorded|conflict|not_found|error
)

PROGRESS_RECOMPUTES = Counter(
    "progress_recomputes_total",
    "Enrollment progress recomputations by outcome",
    ["result"],  # updated|unchanged|not_found|error
)

COURSE_COMPLETIONS = Counter(
    "course_completions_total",
    "Enrollments that reached 100% progress",
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache operations by result",
    ["operation"],  # "hit", "miss" or "error"
)
