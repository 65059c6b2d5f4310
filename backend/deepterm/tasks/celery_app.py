"""Celery application configuration."""

from celery import Celery

from deepterm.core.config import settings

celery_app = Celery(
    "deepterm",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "deepterm.tasks.alerts",
    ],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# Scheduled tasks (Celery Beat)
celery_app.conf.beat_schedule = {
    "check-alerts": {
        "task": "deepterm.tasks.alerts.check_all_alerts",
        "schedule": settings.ALERT_CHECK_INTERVAL_SECONDS,  # Every 5 minutes by default
    },
}
