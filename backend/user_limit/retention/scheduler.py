"""Recurring timer for the eviction job.

Keeps exactly one APScheduler job bound to the eviction task. The job is
recreated whenever the schedule interval changes and recreated on startup
if it has gone missing.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..observability.metrics import schedule_changes_total
from ..observability.request_id import request_id_scope
from .config_store import SCHEDULE_INTERVAL, RetentionConfigStore
from .exceptions import SchedulerError
from .schemas import ScheduleInterval, ScheduleStatus

logger = logging.getLogger(__name__)

JOB_ID = "user_limit.eviction"
JOB_NAME = "Enforce user limit"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RetentionScheduler:
    """Owns the single recurring eviction job.

    Args:
        config_store: Source of the schedule interval
        job_func: Callable invoked on each firing (no arguments)
        scheduler: APScheduler instance; a UTC BackgroundScheduler by default
        clock: Returns the current aware datetime, used for the first firing
    """

    def __init__(
        self,
        config_store: RetentionConfigStore,
        job_func: Callable[[], Any],
        scheduler: Optional[BackgroundScheduler] = None,
        clock: Clock = utcnow,
        timezone_name: str = "UTC",
    ):
        self.config_store = config_store
        self.job_func = job_func
        self.scheduler = scheduler or BackgroundScheduler(timezone=timezone_name)
        self.clock = clock
        self.timezone_name = timezone_name
        self._lock = threading.RLock()

    def start(self) -> None:
        """Start the timer thread if it is not running."""
        with self._lock:
            if not self.scheduler.running:
                self.scheduler.start()
                logger.info("Eviction scheduler started")

    def shutdown(self, wait: bool = False) -> None:
        """Stop the timer thread. An in-flight run is allowed to finish."""
        with self._lock:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=wait)
                logger.info("Eviction scheduler stopped")

    def reschedule(self) -> datetime:
        """Replace the eviction job using the stored schedule interval.

        The first firing is one full interval from now.

        Returns:
            datetime: Next fire time of the new job

        Raises:
            SchedulerError: If the job could not be removed or registered
        """
        interval = self.config_store.get(SCHEDULE_INTERVAL)

        with self._lock:
            removed = self._remove_job()
            first_fire = self.clock() + timedelta(seconds=interval.seconds)

            try:
                self.scheduler.add_job(
                    self._fire,
                    trigger=IntervalTrigger(
                        seconds=interval.seconds,
                        start_date=first_fire,
                        timezone=self.timezone_name,
                    ),
                    id=JOB_ID,
                    name=JOB_NAME,
                    next_run_time=first_fire,
                    max_instances=1,
                    coalesce=True,
                )
            except Exception as e:
                logger.error(
                    "Failed to register eviction job",
                    exc_info=True,
                    extra={"job_id": JOB_ID, "interval": interval.value}
                )
                raise SchedulerError(f"Could not schedule eviction job: {e}") from e

        schedule_changes_total.labels(interval=interval.value).inc()
        logger.info(
            f"Eviction job {'rescheduled' if removed else 'scheduled'} ({interval.value})",
            extra={
                "job_id": JOB_ID,
                "interval": interval.value,
                "next_fire_time": first_fire.isoformat(),
            }
        )
        return first_fire

    def ensure_scheduled(self) -> bool:
        """Create the eviction job if none exists.

        Returns:
            True if a job had to be created, False if one already existed
        """
        with self._lock:
            if self.is_scheduled():
                return False

            logger.warning(
                "Eviction job missing, scheduling it",
                extra={"job_id": JOB_ID}
            )
            self.reschedule()
            return True

    def cancel(self) -> bool:
        """Remove the eviction job. Returns whether one was removed."""
        with self._lock:
            removed = self._remove_job()

        if removed:
            logger.info("Eviction job cancelled", extra={"job_id": JOB_ID})
        return removed

    def is_scheduled(self) -> bool:
        return self.scheduler.get_job(JOB_ID) is not None

    def next_fire_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(JOB_ID)
        if job is None:
            return None
        return getattr(job, "next_run_time", None)

    def current_interval(self) -> Optional[ScheduleInterval]:
        """Interval of the registered job, or None if there is no job."""
        job = self.scheduler.get_job(JOB_ID)
        if job is None:
            return None

        seconds = int(job.trigger.interval.total_seconds())
        for interval in ScheduleInterval:
            if interval.seconds == seconds:
                return interval
        return None

    def status(self, running: bool = False) -> ScheduleStatus:
        """Snapshot of the job for the admin API."""
        return ScheduleStatus(
            scheduled=self.is_scheduled(),
            interval=self.current_interval(),
            next_fire_time=self.next_fire_time(),
            running=running,
        )

    def _remove_job(self) -> bool:
        try:
            self.scheduler.remove_job(JOB_ID)
        except JobLookupError:
            return False
        except Exception as e:
            raise SchedulerError(f"Could not remove eviction job: {e}") from e
        return True

    def _fire(self) -> Any:
        with request_id_scope("schedule"):
            return self.job_func()
