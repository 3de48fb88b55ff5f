"""Prometheus metric inventory.

Every metric the service exports is defined here; the modules that own
the behaviour import the one they need and increment it at the point of
action.  Counters only; the completion pipeline has no latency-sensitive
steps of its own beyond the HTTP request that drives it.
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
    # Marking a session complete fans out into several writes per student,
    # so the upper buckets matter more here than for plain reads.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Completion pipeline
# ---------------------------------------------------------------------------

COMPLETION_RECORDS_WRITTEN = Counter(
    "completion_records_written_total",
    "Content completion rows upserted (re-writes of existing rows included)",
)

CERTIFICATE_ISSUANCE = Counter(
    "certificate_issuance_total",
    "Certificate issuance attempts by activity type and outcome",
    ["activity_type", "outcome"],  # module|course × issued|already_issued|...
)

XP_AWARD_FAILURES = Counter(
    "xp_award_failures_total",
    "XP transactions that failed to write after a certificate was issued",
    ["activity_type"],
)

ATTENDANCE_FAILURES = Counter(
    "attendance_failures_total",
    "Best-effort attendance snapshot writes that failed and were skipped",
)

STUDENT_ISSUANCE_FAILURES = Counter(
    "student_issuance_failures_total",
    "Per-student issuance chains that raised inside a session completion",
)

# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache operations by kind",
    ["operation"],  # hit|miss|invalidate
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
