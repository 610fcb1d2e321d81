"""Prometheus metrics for the user limit service.

Defines and exposes operational metrics for monitoring and alerting.
"""

from prometheus_client import Counter, Histogram, Gauge

# Eviction run metrics
eviction_runs_total = Counter(
    "user_limit_eviction_runs_total",
    "Total eviction runs",
    ["trigger", "status"]  # trigger: schedule|manual|task, status: success|skipped|error
)

eviction_duration_seconds = Histogram(
    "user_limit_eviction_duration_seconds",
    "Time spent on an eviction run in seconds",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

users_deleted_total = Counter(
    "user_limit_users_deleted_total",
    "Total users deleted by eviction runs"
)

users_retained = Gauge(
    "user_limit_users_retained",
    "Number of users kept by the most recent eviction run"
)

# Scheduler metrics
schedule_changes_total = Counter(
    "user_limit_schedule_changes_total",
    "Times the eviction job was (re)created",
    ["interval"]
)
