"""Unit tests for the retention configuration store.

Covers defaults, coercion and clamping of keep_count, schedule token
validation, corrupt stored values and the change callback.
"""

import pytest

from user_limit.options.store import OptionStore
from user_limit.retention.config_store import (
    KEEP_COUNT,
    OPTION_NAMES,
    SCHEDULE_INTERVAL,
    RetentionConfigStore,
    coerce_keep_count,
)
from user_limit.retention.exceptions import ConfigValidationError, UnknownOptionError
from user_limit.retention.schemas import RetentionConfigUpdate, ScheduleInterval


@pytest.fixture
def options(session_factory) -> OptionStore:
    return OptionStore(session_factory)


@pytest.fixture
def changes():
    return []


@pytest.fixture
def store(options, changes) -> RetentionConfigStore:
    return RetentionConfigStore(options, on_change=lambda key, value: changes.append((key, value)))


class TestOptionStore:
    """Test the named option table."""

    def test_add_does_not_overwrite(self, options):
        assert options.add("greeting", "hello") is True
        assert options.add("greeting", "bye") is False
        assert options.get("greeting") == "hello"

    def test_update_reports_change(self, options):
        assert options.update("greeting", "hello") is True
        assert options.update("greeting", "hello") is False
        assert options.update("greeting", "bye") is True
        assert options.get("greeting") == "bye"

    def test_delete(self, options):
        options.add("greeting", "hello")

        assert options.delete("greeting") is True
        assert options.delete("greeting") is False
        assert options.exists("greeting") is False
        assert options.get("greeting", "fallback") == "fallback"


class TestCoerceKeepCount:
    """Test keep_count input coercion."""

    @pytest.mark.parametrize(
        "value,expected",
        [(50, 50), ("50", 50), (" 7 ", 7), (12.9, 12), ("3.5", 3), (0, 1), (-5, 1), ("-2", 1)],
    )
    def test_accepted_values(self, value, expected):
        assert coerce_keep_count(value) == expected

    @pytest.mark.parametrize("value", ["abc", "", None, True, float("nan"), [5]])
    def test_rejected_values(self, value):
        with pytest.raises(ConfigValidationError) as exc:
            coerce_keep_count(value)

        assert exc.value.key == KEEP_COUNT


class TestRetentionConfigStore:
    """Test reading and writing the retention settings."""

    def test_defaults_when_unset(self, store):
        """Test that unset settings read as their defaults."""
        assert store.get(KEEP_COUNT) == 100
        assert store.get(SCHEDULE_INTERVAL) == ScheduleInterval.HOURLY

    def test_set_keep_count_from_string(self, store):
        assert store.set(KEEP_COUNT, "50") == 50
        assert store.get(KEEP_COUNT) == 50

    def test_set_keep_count_clamped(self, store):
        """Test that values below 1 are stored as 1."""
        store.set(KEEP_COUNT, 0)

        assert store.get(KEEP_COUNT) == 1

    def test_invalid_keep_count_keeps_previous(self, store):
        store.set(KEEP_COUNT, 25)

        with pytest.raises(ConfigValidationError):
            store.set(KEEP_COUNT, "lots")

        assert store.get(KEEP_COUNT) == 25

    def test_set_schedule_token(self, store):
        assert store.set(SCHEDULE_INTERVAL, "Daily") == ScheduleInterval.DAILY
        assert store.get(SCHEDULE_INTERVAL) == ScheduleInterval.DAILY

    def test_invalid_schedule_keeps_previous(self, store):
        """Test that an unsupported token is rejected and nothing changes."""
        store.set(SCHEDULE_INTERVAL, "weekly")

        with pytest.raises(ConfigValidationError) as exc:
            store.set(SCHEDULE_INTERVAL, "monthly")

        assert "every_15_min" in exc.value.message
        assert store.get(SCHEDULE_INTERVAL) == ScheduleInterval.WEEKLY

    def test_unknown_key(self, store):
        with pytest.raises(UnknownOptionError):
            store.get("max_users")
        with pytest.raises(UnknownOptionError):
            store.set("max_users", 5)

    def test_corrupt_stored_values_fall_back(self, store, options):
        """Test that unreadable stored values read as defaults."""
        options.update(OPTION_NAMES[KEEP_COUNT], "many")
        options.update(OPTION_NAMES[SCHEDULE_INTERVAL], "fortnightly")

        assert store.get(KEEP_COUNT) == 100
        assert store.get(SCHEDULE_INTERVAL) == ScheduleInterval.HOURLY

    def test_outside_write_below_one_returned_raw(self, store, options):
        """Test that a stored 0 reads as 0 but the config view reports 1."""
        options.update(OPTION_NAMES[KEEP_COUNT], "0")

        assert store.get(KEEP_COUNT) == 0
        assert store.get_config().keep_count == 1

    def test_change_callback_only_on_change(self, store, changes):
        store.set(SCHEDULE_INTERVAL, "daily")
        store.set(SCHEDULE_INTERVAL, "daily")
        store.set(KEEP_COUNT, 10)

        assert changes == [
            (SCHEDULE_INTERVAL, ScheduleInterval.DAILY),
            (KEEP_COUNT, 10),
        ]

    def test_update_validates_before_writing(self, store, changes):
        """Test that one invalid field leaves the other unchanged."""
        with pytest.raises(ConfigValidationError):
            store.update(RetentionConfigUpdate(keep_count=5, schedule_interval="yearly"))

        assert store.get(KEEP_COUNT) == 100
        assert changes == []

    def test_partial_update(self, store):
        config = store.update(RetentionConfigUpdate(keep_count=3))

        assert config.keep_count == 3
        assert config.schedule_interval == ScheduleInterval.HOURLY

    def test_initialize_defaults_preserves_existing(self, store, options):
        store.set(KEEP_COUNT, 7)

        store.initialize_defaults()
        store.initialize_defaults()

        assert store.get(KEEP_COUNT) == 7
        assert options.get(OPTION_NAMES[SCHEDULE_INTERVAL]) == "hourly"

    def test_clear(self, store, options):
        store.initialize_defaults()
        store.set(KEEP_COUNT, 7)

        store.clear()

        assert not options.exists(OPTION_NAMES[KEEP_COUNT])
        assert not options.exists(OPTION_NAMES[SCHEDULE_INTERVAL])
        assert store.get(KEEP_COUNT) == 100
