"""Exceptions raised by the retention components."""


class RetentionError(Exception):
    """Base class for user limit errors."""


class ConfigValidationError(RetentionError, ValueError):
    """Configuration input was rejected; the stored value is unchanged."""

    def __init__(self, key: str, value, message: str):
        self.key = key
        self.value = value
        self.message = message
        super().__init__(f"Invalid value {value!r} for {key}: {message}")


class UnknownOptionError(ConfigValidationError):
    """Configuration key is not one of the retention settings."""

    def __init__(self, key: str):
        super().__init__(key, None, "unknown retention setting")


class SchedulerError(RetentionError):
    """The timer subsystem could not register or remove the eviction job."""
