"""FastAPI router for user limit management endpoints.

Provides admin APIs for:
- Viewing and updating the retention settings
- Listing the supported schedule intervals
- Inspecting the eviction job
- Previewing what a run would delete
- Running an eviction now, in-process or as a background task

All endpoints require the admin bearer token.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_plugin, require_admin
from .exceptions import ConfigValidationError, SchedulerError
from .plugin import UserLimitPlugin
from .schemas import (
    EvictionPreview,
    EvictionResult,
    RetentionConfig,
    RetentionConfigUpdate,
    ScheduleChoice,
    ScheduleStatus,
    schedule_choices,
)
from .tasks import enforce_user_limit_task

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/retention",
    tags=["retention"],
    dependencies=[Depends(require_admin)],
)


@router.get("/settings", response_model=RetentionConfig)
def get_retention_settings(
    plugin: UserLimitPlugin = Depends(get_plugin),
) -> RetentionConfig:
    """Get current retention settings.

    Returns:
        RetentionConfig: keep_count and schedule_interval (defaults if unset)
    """
    return plugin.config_store.get_config()


@router.patch("/settings", response_model=RetentionConfig)
def update_retention_settings(
    updates: RetentionConfigUpdate,
    plugin: UserLimitPlugin = Depends(get_plugin),
) -> RetentionConfig:
    """Update retention settings. Partial updates supported.

    Validation:
    - keep_count is clamped to at least 1
    - schedule_interval must be one of the supported tokens

    A changed schedule_interval reschedules the eviction job before the
    response is returned.

    Raises:
        HTTPException 400: Validation error (settings unchanged)
        HTTPException 503: Job could not be rescheduled
    """
    try:
        updated = plugin.config_store.update(updates)
    except ConfigValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"field": e.key, "message": e.message},
        )
    except SchedulerError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    logger.info(
        "Updated retention settings",
        extra={
            "keep_count": updated.keep_count,
            "interval": updated.schedule_interval.value,
        }
    )
    return updated


@router.get("/schedules", response_model=List[ScheduleChoice])
def list_schedules() -> List[ScheduleChoice]:
    """Supported schedule intervals with labels and durations."""
    return schedule_choices()


@router.get("/schedule", response_model=ScheduleStatus)
def get_schedule_status(
    plugin: UserLimitPlugin = Depends(get_plugin),
) -> ScheduleStatus:
    """Current eviction job: whether it exists, its interval, next firing."""
    return plugin.schedule_status()


@router.get("/report", response_model=EvictionPreview)
def get_eviction_report(
    plugin: UserLimitPlugin = Depends(get_plugin),
) -> EvictionPreview:
    """Preview how many users the next run would delete, without deleting."""
    return plugin.service.preview()


@router.post("/run", response_model=EvictionResult)
def run_eviction(
    plugin: UserLimitPlugin = Depends(get_plugin),
) -> EvictionResult:
    """Run an eviction now and wait for it to finish.

    Raises:
        HTTPException 500: The run failed; nothing was committed
    """
    try:
        return plugin.run_now()
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Eviction run failed: {e}",
        )


@router.post("/cleanup", response_model=Dict[str, Any], status_code=status.HTTP_202_ACCEPTED)
def trigger_eviction_task() -> Dict[str, Any]:
    """Enqueue an eviction run on the Celery worker.

    Returns:
        Dict with:
        - status: "enqueued"
        - task_id: Celery task ID for status checking
    """
    task = enforce_user_limit_task.delay()

    logger.info(
        "User limit task enqueued",
        extra={"task_id": task.id}
    )

    return {
        "status": "enqueued",
        "task_id": task.id,
    }
