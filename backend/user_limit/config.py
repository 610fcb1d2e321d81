"""Application configuration via environment variables.

Provides type-safe settings loading using pydantic-settings.
Environment variables can be loaded from a .env file.
"""

from typing import Optional
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Service settings loaded from environment variables.

    All settings have sensible defaults for development.
    Production deployments MUST set ADMIN_API_TOKEN.

    Environment Variables:
        DATABASE_URL: Connection string of the database holding the users table
        CELERY_BROKER_URL: Broker for the manual cleanup task
        CELERY_RESULT_BACKEND: Result backend for the manual cleanup task
        ADMIN_API_TOKEN: Bearer token required by the admin API
        SCHEDULER_ENABLED: Start the in-process timer on API startup (default True)
        ANOMALY_THRESHOLD: Deleted-user count above which a run is flagged
        LOG_LEVEL: Logging level (default INFO)
        LOG_JSON: Emit JSON log lines (default True)
    """

    # Database
    DATABASE_URL: str = "sqlite:///./user_limit.db"

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    # Security
    ADMIN_API_TOKEN: Optional[str] = "dev-admin-token-CHANGE-IN-PRODUCTION"

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TIMEZONE: str = "UTC"

    # Retention
    ANOMALY_THRESHOLD: int = 1000

    # Application
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    ENVIRONMENT: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache for singleton behavior.
    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
