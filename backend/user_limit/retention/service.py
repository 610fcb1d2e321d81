"""Eviction service: keep the N longest-registered users, delete the rest.

One run:
1. Read keep_count from the config store
2. Select the keep_count users with the earliest registration time
3. If that keep list is empty, delete nothing
4. Otherwise delete every other user in one bulk statement
5. Commit and report retained/deleted counts

The keep list and the delete are issued in one transaction, but a user
registered between the two statements can still be deleted if it falls
outside the keep list. That race is accepted.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict

from ..database import SessionFactory, session_scope
from ..observability.metrics import (
    eviction_duration_seconds,
    eviction_runs_total,
    users_deleted_total,
    users_retained,
)
from .config_store import KEEP_COUNT, RetentionConfigStore
from .repository import UserRepository
from .schemas import EvictionPreview, EvictionResult

logger = logging.getLogger(__name__)

DEFAULT_ANOMALY_THRESHOLD = 1000


class UserRetentionService:
    """Executes eviction runs against the users table.

    Runs on the same instance are serialized: a manual run and a timer
    firing never issue overlapping delete statements.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        config_store: RetentionConfigStore,
        anomaly_threshold: int = DEFAULT_ANOMALY_THRESHOLD,
    ):
        """Initialize eviction service.

        Args:
            session_factory: Callable returning a new SQLAlchemy session
            config_store: Source of the retention count
            anomaly_threshold: Deleted count above which a run is flagged
        """
        self.session_factory = session_factory
        self.config_store = config_store
        self.anomaly_threshold = anomaly_threshold
        self._run_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def run(self, trigger: str = "manual") -> EvictionResult:
        """Run one eviction.

        Args:
            trigger: Label for logs and metrics (schedule, manual, task)

        Returns:
            EvictionResult: Counts for this run

        Raises:
            Exception: Storage errors are logged, rolled back and re-raised
        """
        with self._run_lock:
            return self._run(trigger)

    def _run(self, trigger: str) -> EvictionResult:
        started_at = datetime.now(timezone.utc)
        keep_count = self.config_store.get(KEEP_COUNT)

        logger.info(
            "Starting eviction run",
            extra={"trigger": trigger, "keep_count": keep_count}
        )

        try:
            with session_scope(self.session_factory) as session:
                repo = UserRepository(session)
                ids_to_keep = repo.list_oldest_ids(keep_count)

                if not ids_to_keep:
                    deleted_count = 0
                else:
                    deleted_count = repo.delete_all_except(ids_to_keep)

        except Exception:
            eviction_runs_total.labels(trigger=trigger, status="error").inc()
            logger.error(
                "Eviction run failed",
                exc_info=True,
                extra={"trigger": trigger, "keep_count": keep_count}
            )
            raise

        completed_at = datetime.now(timezone.utc)
        duration = (completed_at - started_at).total_seconds()
        skipped = not ids_to_keep

        result = EvictionResult(
            keep_count=keep_count,
            retained_count=len(ids_to_keep),
            deleted_count=deleted_count,
            skipped=skipped,
            is_anomaly=deleted_count > self.anomaly_threshold,
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=duration,
        )

        eviction_runs_total.labels(
            trigger=trigger, status="skipped" if skipped else "success"
        ).inc()
        eviction_duration_seconds.observe(duration)
        users_deleted_total.inc(deleted_count)
        users_retained.set(result.retained_count)

        if skipped:
            logger.warning(
                "Eviction skipped: keep list is empty",
                extra={"trigger": trigger, "keep_count": keep_count}
            )
        else:
            logger.info(
                "Eviction run completed",
                extra={
                    "trigger": trigger,
                    "keep_count": keep_count,
                    "retained_count": result.retained_count,
                    "deleted_count": deleted_count,
                    "duration_seconds": duration,
                }
            )

        if result.is_anomaly:
            logger.warning(
                f"Eviction anomaly detected: {deleted_count} users deleted",
                extra={"trigger": trigger, "deleted_count": deleted_count}
            )

        return result

    def preview(self) -> EvictionPreview:
        """Report what a run would delete right now, without deleting.

        Returns:
            EvictionPreview: Counts of users that would be kept and deleted
        """
        keep_count = self.config_store.get(KEEP_COUNT)

        with session_scope(self.session_factory) as session:
            repo = UserRepository(session)
            total = repo.count()
            ids_to_keep = repo.list_oldest_ids(keep_count)

            if ids_to_keep:
                to_delete = total - len(ids_to_keep)
            else:
                to_delete = 0

            oldest_deleted = None
            if to_delete:
                oldest_deleted = repo.earliest_registered_outside(ids_to_keep)

        return EvictionPreview(
            keep_count=keep_count,
            total_users=total,
            users_to_retain=len(ids_to_keep),
            users_to_delete=to_delete,
            oldest_deleted_registered_at=oldest_deleted,
        )


def run_scheduled_eviction(service: UserRetentionService, trigger: str = "schedule") -> Dict[str, Any]:
    """Entry point for timer firings and background tasks.

    Failures are logged and reported in the returned dict instead of raised,
    so the next firing proceeds normally.

    Returns:
        Dict with "status" ("completed" or "failed") and run details
    """
    try:
        result = service.run(trigger=trigger)
    except Exception as e:
        return {
            "status": "failed",
            "trigger": trigger,
            "error": str(e),
            "deleted_count": 0,
        }

    return {
        "status": "completed",
        "trigger": trigger,
        **result.model_dump(mode="json"),
    }
