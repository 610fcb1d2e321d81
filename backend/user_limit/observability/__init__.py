"""Observability module for the user limit service.

Provides structured logging, metrics, request correlation, and health checks.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    eviction_runs_total,
    eviction_duration_seconds,
    users_deleted_total,
    users_retained,
    schedule_changes_total,
)
from .request_id import (
    request_id_var,
    get_request_id,
    set_request_id,
    generate_request_id,
    request_id_scope,
)
from .health import HealthStatus, ComponentHealth

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "eviction_runs_total",
    "eviction_duration_seconds",
    "users_deleted_total",
    "users_retained",
    "schedule_changes_total",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "request_id_scope",
    # Health
    "HealthStatus",
    "ComponentHealth",
]
