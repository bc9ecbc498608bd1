"""Celery tasks keeping the session and raw event stores healthy."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Optional

from app.db import db_manager
from app.infra.celery_app import celery_app
from app.infra.logging_config import get_logger
from app.services.raw_event_service import RawEventService
from app.services.session_manager import SessionManager
from app.workers.llm import build_summary_runner_from_env

logger = get_logger("maintenance")


@celery_app.task(name="app.tasks.maintenance_task.purge_expired_raw_events_task")
def purge_expired_raw_events_task() -> int:
    """Delete raw events past their retention period."""
    with db_manager.db_session() as db:
        purged = RawEventService(db).purge_expired()
    logger.info("Purged %d expired raw events", purged)
    return purged


@celery_app.task(name="app.tasks.maintenance_task.reconcile_duplicate_sessions_task")
def reconcile_duplicate_sessions_task() -> int:
    """Close all but the earliest active session of every room."""
    with db_manager.db_session() as db:
        closed = SessionManager(db).reconcile_duplicate_active_sessions()
    if closed:
        logger.warning("Reconciled %d duplicate active sessions", closed)
    return closed


@celery_app.task(name="app.tasks.maintenance_task.close_stale_summarizing_task")
def close_stale_summarizing_task(older_than_minutes: Optional[int] = None) -> int:
    """Close sessions stuck in summarizing and fail their summaries."""
    older_than = (
        timedelta(minutes=older_than_minutes) if older_than_minutes else None
    )
    with db_manager.db_session() as db:
        closed = SessionManager(db).close_stale_summarizing(older_than)
    if closed:
        logger.warning("Closed %d sessions stuck in summarizing", closed)
    return closed


@celery_app.task(name="app.tasks.maintenance_task.close_expired_sessions_task")
def close_expired_sessions_task() -> int:
    """Close and summarize active sessions that outlived the session timeout."""
    runner = build_summary_runner_from_env()
    with db_manager.db_session() as db:
        closed = asyncio.run(SessionManager(db, runner=runner).close_expired_sessions())
    if closed:
        logger.info("Auto-closed %d expired sessions", closed)
    return closed
