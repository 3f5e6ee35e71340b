"""
Celery application configuration.

This module configures the Celery app with Redis as broker and backend, and
schedules the periodic sweep of abandoned scratch directories.
"""

from celery import Celery, signals
from celery.schedules import crontab
from loguru import logger

from vault_core.config import settings
from vault_core.logging import setup_logging

celery_app = Celery(
    "backup_vault",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.workers.tasks",
    ],
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Task tracking
    task_track_started=True,
    task_acks_late=True,  # Acknowledge after task completes (for reliability)
    # Results
    result_expires=3600,
    # Worker settings
    worker_prefetch_multiplier=1,  # Backups are large, fetch one at a time
    beat_schedule={
        "sweep-scratch-dirs": {
            "task": "app.workers.tasks.sweep_scratch_dirs",
            "schedule": crontab(minute=0),
        },
    },
)


@signals.setup_logging.connect
def configure_worker_logging(**kwargs):
    # Connecting this signal stops Celery from installing its own root handlers
    setup_logging(settings.LOG_LEVEL)


logger.info(f"Celery app configured with broker: {settings.CELERY_BROKER_URL}")
