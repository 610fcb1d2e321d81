"""Typed access to the retention settings.

Two settings are persisted as named options:
- keep_count: number of users to keep (integer, minimum 1, default 100)
- schedule_interval: eviction schedule token (default "hourly")

Writes are validated here. Invalid input raises ConfigValidationError and
leaves the stored value untouched. A change callback (the lifecycle
component's on_config_changed) runs synchronously after a stored value
actually changes, which is how a new schedule interval reaches the scheduler.
"""

import logging
import math
import re
from typing import Any, Callable, Dict, Optional

from ..options.store import OptionStore
from .exceptions import ConfigValidationError, UnknownOptionError
from .schemas import (
    DEFAULT_KEEP_COUNT,
    DEFAULT_SCHEDULE_INTERVAL,
    RetentionConfig,
    RetentionConfigUpdate,
    ScheduleInterval,
)

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str, Any], None]

KEEP_COUNT = "keep_count"
SCHEDULE_INTERVAL = "schedule_interval"

# Public setting key -> row name in the options table
OPTION_NAMES = {
    KEEP_COUNT: "user_limit_keep_count",
    SCHEDULE_INTERVAL: "user_limit_schedule_interval",
}

_NUMERIC = re.compile(r"^[+-]?\d+(\.\d+)?$")


def coerce_keep_count(value: Any) -> int:
    """Coerce keep_count input to an integer of at least 1.

    Accepts integers, finite floats (truncated) and numeric strings.
    Values below 1 are clamped to 1.

    Raises:
        ConfigValidationError: If value is not numeric
    """
    if isinstance(value, bool):
        raise ConfigValidationError(KEEP_COUNT, value, "must be a number")

    if isinstance(value, int):
        count = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise ConfigValidationError(KEEP_COUNT, value, "must be a finite number")
        count = int(value)
    elif isinstance(value, str) and _NUMERIC.match(value.strip()):
        count = int(float(value.strip()))
    else:
        raise ConfigValidationError(KEEP_COUNT, value, "must be a number")

    return max(1, count)


def coerce_schedule_interval(value: Any) -> ScheduleInterval:
    """Resolve schedule_interval input to a ScheduleInterval.

    Raises:
        ConfigValidationError: If value is not a supported interval token
    """
    try:
        return ScheduleInterval.parse(value)
    except ValueError:
        allowed = ", ".join(interval.value for interval in ScheduleInterval)
        raise ConfigValidationError(
            SCHEDULE_INTERVAL, value, f"must be one of: {allowed}"
        )


class RetentionConfigStore:
    """Configuration store for the retention settings."""

    def __init__(
        self,
        options: OptionStore,
        on_change: Optional[ChangeCallback] = None,
    ):
        self.options = options
        self.on_change = on_change

    def set_change_callback(self, on_change: Optional[ChangeCallback]) -> None:
        self.on_change = on_change

    def get(self, key: str) -> Any:
        """Return the stored value of ``key`` or its default.

        Never fails for a known key: an unreadable stored value is logged
        and the default is returned. A numeric keep_count is returned as
        stored, even when it is below 1.

        Raises:
            UnknownOptionError: If key is not a retention setting
        """
        if key == KEEP_COUNT:
            raw = self.options.get(OPTION_NAMES[KEEP_COUNT])
            if raw is None:
                return DEFAULT_KEEP_COUNT
            try:
                return int(raw)
            except ValueError:
                logger.warning(
                    f"Stored keep_count {raw!r} is not an integer, using default",
                    extra={"option_value": raw}
                )
                return DEFAULT_KEEP_COUNT

        if key == SCHEDULE_INTERVAL:
            raw = self.options.get(OPTION_NAMES[SCHEDULE_INTERVAL])
            if raw is None:
                return DEFAULT_SCHEDULE_INTERVAL
            try:
                return ScheduleInterval.parse(raw)
            except ValueError:
                logger.warning(
                    f"Stored schedule_interval {raw!r} is not supported, using default",
                    extra={"option_value": raw}
                )
                return DEFAULT_SCHEDULE_INTERVAL

        raise UnknownOptionError(key)

    def set(self, key: str, value: Any) -> Any:
        """Validate and store ``value`` under ``key``.

        Returns:
            The coerced value that is now stored

        Raises:
            ConfigValidationError: If value is invalid (stored value unchanged)
            UnknownOptionError: If key is not a retention setting
        """
        coerced = self._coerce(key, value)
        self._write({key: coerced})
        return coerced

    def get_config(self) -> RetentionConfig:
        """Current settings as a RetentionConfig.

        A keep_count stored below 1 by an outside writer is reported as 1
        here; the executor reads the raw value through get().
        """
        return RetentionConfig(
            keep_count=max(1, self.get(KEEP_COUNT)),
            schedule_interval=self.get(SCHEDULE_INTERVAL),
        )

    def update(self, updates: RetentionConfigUpdate) -> RetentionConfig:
        """Apply a partial update.

        All provided fields are validated before anything is written, so an
        invalid field leaves the other one unchanged as well.
        """
        provided = updates.model_dump(exclude_unset=True, exclude_none=True)
        coerced = {key: self._coerce(key, value) for key, value in provided.items()}
        self._write(coerced)
        return self.get_config()

    def initialize_defaults(self) -> None:
        """Store the defaults for any setting that is not stored yet."""
        added_count = self.options.add(
            OPTION_NAMES[KEEP_COUNT], str(DEFAULT_KEEP_COUNT)
        )
        added_interval = self.options.add(
            OPTION_NAMES[SCHEDULE_INTERVAL], DEFAULT_SCHEDULE_INTERVAL.value
        )
        if added_count or added_interval:
            logger.info(
                "Initialized retention defaults",
                extra={"keep_count_added": added_count, "schedule_interval_added": added_interval}
            )

    def clear(self) -> None:
        """Remove both settings; subsequent reads return defaults."""
        for name in OPTION_NAMES.values():
            self.options.delete(name)
        logger.info("Cleared retention settings")

    def _coerce(self, key: str, value: Any) -> Any:
        if key == KEEP_COUNT:
            return coerce_keep_count(value)
        if key == SCHEDULE_INTERVAL:
            return coerce_schedule_interval(value)
        raise UnknownOptionError(key)

    def _write(self, values: Dict[str, Any]) -> None:
        changed = []
        for key, value in values.items():
            stored = value.value if isinstance(value, ScheduleInterval) else str(value)
            if self.options.update(OPTION_NAMES[key], stored):
                changed.append((key, value))
                logger.info(
                    f"Retention setting {key} updated",
                    extra={"setting": key, "value": stored}
                )

        if self.on_change is None:
            return
        for key, value in changed:
            self.on_change(key, value)
