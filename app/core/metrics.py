"""Prometheus metric inventory for quiz-attempt-service.

Every metric the service exports is declared here; the modules that own
the behavior import and update them.  Prometheus scrapes GET /metrics.

HTTP metrics come from MetricsMiddleware.  Attempt metrics are updated by
QuizAttemptService at the point a transition is committed, so a counter
only moves when the store write succeeded.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, route template, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Progress autosaves are a single-row read-modify-write; anything
    # past 250ms means the store is struggling.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Attempt lifecycle metrics
# ---------------------------------------------------------------------------

ATTEMPTS_STARTED = Counter(
    "quiz_attempts_started_total",
    "start_attempt calls by outcome",
    ["outcome"],  # "created" or "resumed"
)

PROGRESS_UPDATES = Counter(
    "quiz_attempt_progress_updates_total",
    "Accepted update_progress writes",
)

ATTEMPTS_EXPIRED = Counter(
    "quiz_attempts_expired_total",
    "Attempts moved to expired, by what detected the lapse",
    ["trigger"],  # "progress", "submit", "start"
)

ATTEMPTS_SUBMITTED = Counter(
    "quiz_attempts_submitted_total",
    "submit_attempt calls by outcome",
    ["outcome"],  # "graded" or "already_submitted"
)

ATTEMPT_SCORE_RATIO = Histogram(
    "quiz_attempt_score_ratio",
    "Fraction of questions answered correctly at submission",
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

ATTEMPT_OPERATION_ERRORS = Counter(
    "quiz_attempt_operation_errors_total",
    "Rejected attempt operations by operation and error kind",
    ["operation", "kind"],
)

# ---------------------------------------------------------------------------
# Supporting infrastructure
# ---------------------------------------------------------------------------

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "user" or "ip"
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Quiz definition cache lookups by result",
    ["operation"],  # "hit" or "miss"
)
