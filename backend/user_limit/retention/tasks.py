"""Celery tasks for user limit enforcement.

Tasks:
- retention.enforce_user_limit: run one eviction outside the API process
"""

import logging
from typing import Dict, Any

from ..observability.request_id import request_id_scope
from ..workers.celery_app import celery_app
from .plugin import build_plugin
from .service import run_scheduled_eviction

logger = logging.getLogger(__name__)


@celery_app.task(name="retention.enforce_user_limit", bind=True)
def enforce_user_limit_task(self) -> Dict[str, Any]:
    """Run one eviction with the stored retention count.

    The worker builds its own plugin instance against the configured
    database. Runs inside one worker process are serialized by the service;
    the timer in the API process is independent.

    Returns:
        Dict with cleanup statistics:
        - status: "completed" or "failed"
        - keep_count, retained_count, deleted_count, skipped
        - error: Error message when status is "failed"

    Raises:
        Nothing: failures are logged and reported in the result
    """
    task_id = getattr(self.request, "id", None)

    with request_id_scope("task"):
        logger.info("User limit task started", extra={"task_id": task_id})

        plugin = build_plugin()
        result = run_scheduled_eviction(plugin.service, trigger="task")

        if result["status"] == "completed":
            logger.info(
                "User limit task completed",
                extra={"task_id": task_id, "deleted_count": result.get("deleted_count")}
            )
        else:
            logger.error(
                "User limit task failed",
                extra={"task_id": task_id, "error": result.get("error")}
            )

    return result
