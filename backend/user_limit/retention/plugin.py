"""Lifecycle component that wires the retention pieces together.

The host calls these methods explicitly:
- on_activate: create tables, store default settings, make sure a job exists
- on_deactivate: cancel the job and remove the settings
- on_config_changed: reschedule when the schedule interval changes
- on_startup / on_shutdown: start and stop the timer thread
"""

import logging
from typing import Any, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.engine import Engine

from ..config import Settings, get_settings
from ..database import SessionFactory, SessionLocal, create_plugin_tables, engine as default_engine
from ..options.store import OptionStore
from .config_store import SCHEDULE_INTERVAL, RetentionConfigStore
from .scheduler import Clock, RetentionScheduler, utcnow
from .schemas import EvictionResult, ScheduleStatus
from .service import UserRetentionService, run_scheduled_eviction

logger = logging.getLogger(__name__)


class UserLimitPlugin:
    """Configuration store, scheduler and executor behind one interface."""

    def __init__(
        self,
        session_factory: SessionFactory,
        engine: Optional[Engine] = None,
        settings: Optional[Settings] = None,
        scheduler: Optional[BackgroundScheduler] = None,
        clock: Clock = utcnow,
    ):
        """Build the components.

        Args:
            session_factory: Callable returning a new SQLAlchemy session
            engine: Engine used to create the plugin tables on activation
            settings: Service settings (defaults to get_settings())
            scheduler: APScheduler instance to register the job on
            clock: Current-time source for the scheduler
        """
        self.settings = settings or get_settings()
        self.engine = engine

        self.options = OptionStore(session_factory)
        self.config_store = RetentionConfigStore(self.options)
        self.service = UserRetentionService(
            session_factory,
            self.config_store,
            anomaly_threshold=self.settings.ANOMALY_THRESHOLD,
        )
        self.scheduler = RetentionScheduler(
            self.config_store,
            job_func=self.run_scheduled,
            scheduler=scheduler,
            clock=clock,
            timezone_name=self.settings.SCHEDULER_TIMEZONE,
        )

        self.config_store.set_change_callback(self.on_config_changed)

    def on_activate(self) -> None:
        """Install: tables, default settings, eviction job."""
        if self.engine is not None:
            create_plugin_tables(self.engine)
        self.config_store.initialize_defaults()
        self.scheduler.ensure_scheduled()
        logger.info("User limit activated")

    def on_deactivate(self) -> None:
        """Uninstall: no further firings, settings removed."""
        self.scheduler.cancel()
        self.config_store.clear()
        logger.info("User limit deactivated")

    def on_config_changed(self, key: str, new_value: Any) -> None:
        """React to a stored setting change.

        Only the schedule interval affects the timer; keep_count is read
        fresh by every run.
        """
        if key == SCHEDULE_INTERVAL:
            logger.info(
                "Schedule interval changed, rescheduling",
                extra={"setting": key, "interval": str(getattr(new_value, "value", new_value))}
            )
            self.scheduler.reschedule()

    def on_startup(self, start_timer: bool = True) -> None:
        """Process start: run the timer and restore a missing job."""
        if start_timer:
            self.scheduler.start()
        self.scheduler.ensure_scheduled()

    def on_shutdown(self) -> None:
        self.scheduler.shutdown(wait=False)

    def run_now(self) -> EvictionResult:
        """Run an eviction immediately; errors propagate."""
        return self.service.run(trigger="manual")

    def run_scheduled(self) -> Dict[str, Any]:
        """Timer callback.

        After the run, the job is realigned with the stored interval in case
        the setting was changed by another process (CLI, worker).
        """
        result = run_scheduled_eviction(self.service, trigger="schedule")

        stored = self.config_store.get(SCHEDULE_INTERVAL)
        if self.scheduler.current_interval() != stored:
            logger.info(
                "Stored schedule interval differs from the job, rescheduling",
                extra={"interval": stored.value}
            )
            self.scheduler.reschedule()

        return result

    def schedule_status(self) -> ScheduleStatus:
        return self.scheduler.status(running=self.service.is_running)


def build_plugin(settings: Optional[Settings] = None) -> UserLimitPlugin:
    """Plugin bound to the configured database."""
    return UserLimitPlugin(
        session_factory=SessionLocal,
        engine=default_engine,
        settings=settings,
    )
