"""Celery application configuration."""
from celery import Celery
from celery.signals import setup_logging

from tracepulse.config import settings
from tracepulse.log_config import configure_logging

celery_app = Celery(
    "tracepulse_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["tracepulse.workers.tasks"]
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max per batch
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    # Result settings
    result_expires=3600,

    # Retry settings
    task_default_retry_delay=30,
    task_max_retries=3,

    # Beat schedule for periodic tasks
    beat_schedule={
        "reload-system-map": {
            "task": "tracepulse.workers.tasks.reload_system_map",
            "schedule": float(settings.SYSTEM_MAP_TTL_SECONDS),
        },
    },
)


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    configure_logging()
