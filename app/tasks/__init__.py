# Import celery app first
from app.infra.celery_app import celery_app

# Initialize logging configuration for Celery workers
from app.infra.logging_config import LoggingConfig
from app.tasks.maintenance_task import (
    close_expired_sessions_task,
    close_stale_summarizing_task,
    purge_expired_raw_events_task,
    reconcile_duplicate_sessions_task,
)

LoggingConfig()  # Initialize logging

__all__ = [
    "celery_app",
    "close_expired_sessions_task",
    "close_stale_summarizing_task",
    "purge_expired_raw_events_task",
    "reconcile_duplicate_sessions_task",
]
