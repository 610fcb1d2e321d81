"""Celery application for background retention tasks.

The recurring schedule runs in-process (see retention.scheduler); Celery
carries manually triggered runs so the admin API returns immediately.
"""

from celery import Celery

from ..config import get_settings

settings = get_settings()

celery_app = Celery(
    "user_limit",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["user_limit.retention.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_acks_late=False,
    worker_prefetch_multiplier=1,
)
