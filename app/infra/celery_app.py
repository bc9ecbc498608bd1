"""Celery application for periodic maintenance work."""

from celery import Celery
from celery.schedules import crontab

from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "chat_digest",
    broker=settings.celery_broker_url,
    backend=settings.celery_broker_url,
    include=["app.tasks.maintenance_task"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    "purge-expired-raw-events": {
        "task": "app.tasks.maintenance_task.purge_expired_raw_events_task",
        "schedule": crontab(minute=15, hour=3),
    },
    "reconcile-duplicate-active-sessions": {
        "task": "app.tasks.maintenance_task.reconcile_duplicate_sessions_task",
        "schedule": crontab(minute="*/10"),
    },
    "close-stale-summarizing-sessions": {
        "task": "app.tasks.maintenance_task.close_stale_summarizing_task",
        "schedule": crontab(minute="*/5"),
    },
    "close-expired-sessions": {
        "task": "app.tasks.maintenance_task.close_expired_sessions_task",
        "schedule": crontab(minute="*/15"),
    },
}
