"""User retention module.

Keeps the users table at or below a configured size by deleting the most
recently registered accounts on a schedule.

This module provides:
- Retention settings with validation and defaults (config_store)
- The eviction run and its dry-run preview (service)
- The single recurring eviction job (scheduler)
- Lifecycle hooks for the host application (plugin)
- Admin API endpoints and a Celery task for manual runs
"""

from .schemas import (
    ScheduleInterval,
    RetentionConfig,
    RetentionConfigUpdate,
    EvictionResult,
    EvictionPreview,
)

# Service, scheduler and plugin are imported directly to keep this package light
# Use: from user_limit.retention.plugin import UserLimitPlugin

__all__ = [
    "ScheduleInterval",
    "RetentionConfig",
    "RetentionConfigUpdate",
    "EvictionResult",
    "EvictionPreview",
]
