"""Prometheus metric definitions for the roadmap backend.

Everything is registered on the default registry and exposed by ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Info

app_info = Info("roadmap", "Roadmap application metadata")

# ── HTTP ────────────────────────────────────────────────────────────
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently being served",
    ["method"],
)

# Rejected mutations, labelled by domain error class (ForbiddenError, DateOrderError, ...)
roadmap_errors_total = Counter(
    "roadmap_errors_total",
    "Requests rejected with a domain error",
    ["error", "status"],
)

# ── Connection pool ─────────────────────────────────────────────────
db_pool_size = Gauge("db_pool_size", "Configured size of the connection pool")
db_pool_checked_in = Gauge("db_pool_checked_in", "Idle connections in the pool")
db_pool_checked_out = Gauge("db_pool_checked_out", "Connections handed out to sessions")
db_pool_overflow = Gauge("db_pool_overflow", "Connections opened beyond pool_size")

# ── Background propagation ──────────────────────────────────────────
bg_task_runs_total = Counter(
    "bg_task_runs_total",
    "Background task executions by outcome",
    ["task_name", "status"],
)
bg_task_last_success = Gauge(
    "bg_task_last_success_timestamp",
    "Unix time of the last successful background task run",
    ["task_name"],
)
reschedule_duration_seconds = Histogram(
    "reschedule_duration_seconds",
    "Wall time of one propagation run, including its own session",
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
reschedule_tasks_pending = Gauge(
    "reschedule_tasks_pending",
    "Propagation tasks started but not yet finished",
)
milestones_rescheduled_total = Counter(
    "milestones_rescheduled_total",
    "Dependent milestones whose dates were rewritten by propagation",
    ["dependency_type"],
)
