"""Health check utilities for the user limit service.

Provides health checks for the database and the eviction scheduler.
"""

import time
from enum import Enum
from typing import Dict, Optional
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.orm import Session

from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health check status enum."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def check_database_health(db: Session) -> ComponentHealth:
    """Check database connectivity.

    Args:
        db: Database session

    Returns:
        ComponentHealth: Database health status
    """
    try:
        start = time.time()
        # Simple query to verify connectivity
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000

        return ComponentHealth(
            status=HealthStatus.HEALTHY,
            message="Database connection OK",
            latency_ms=round(latency_ms, 2)
        )
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"Database error: {str(e)}"
        )


def check_scheduler_health(plugin) -> ComponentHealth:
    """Check that the eviction job exists and the timer thread runs.

    A missing job or a stopped timer is DEGRADED rather than UNHEALTHY:
    the API keeps working and the next startup restores the job.

    Args:
        plugin: UserLimitPlugin of the running application, or None

    Returns:
        ComponentHealth: Scheduler health status
    """
    if plugin is None:
        return ComponentHealth(
            status=HealthStatus.DEGRADED,
            message="Scheduler not initialized"
        )

    if not plugin.scheduler.scheduler.running:
        return ComponentHealth(
            status=HealthStatus.DEGRADED,
            message="Scheduler thread not running"
        )

    next_fire = plugin.scheduler.next_fire_time()
    if next_fire is None:
        return ComponentHealth(
            status=HealthStatus.DEGRADED,
            message="Eviction job not scheduled"
        )

    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message=f"Next eviction at {next_fire.isoformat()}"
    )


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Determine overall health from component statuses.

    Args:
        components: Dictionary of component health statuses

    Returns:
        HealthStatus: Overall system health
    """
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY

    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY

    return HealthStatus.DEGRADED
