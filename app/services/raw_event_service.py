"""Append-only store of inbound platform events, kept for audit and replay."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.infra.logging_config import get_logger
from app.models.raw_event import RawEvent
from app.schemas.events import PlatformEvent
from app.utils.time import utcnow

logger = get_logger("raw_events")


class RawEventService:
    def __init__(self, db: Session, retention_days: Optional[int] = None) -> None:
        self.db = db
        self.retention_days = retention_days or get_settings().raw_event_retention_days

    def get_event(self, event_id: str) -> Optional[RawEvent]:
        return self.db.query(RawEvent).filter(RawEvent.id == event_id).first()

    def store(self, event: PlatformEvent) -> bool:
        """
        Store the event once. Returns False when the id is already stored
        (a platform redelivery).
        """
        if self.get_event(event.event_id) is not None:
            return False
        now = utcnow()
        raw = RawEvent(
            id=event.event_id,
            channel=str(event.channel),
            event_type=event.event_type,
            user_id=event.user_id,
            payload=event.payload,
            received_at=now,
            expires_at=now + timedelta(days=self.retention_days),
        )
        self.db.add(raw)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        return True

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        result = self.db.execute(
            delete(RawEvent)
            .where(RawEvent.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount:
            logger.debug("Deleted %d raw events", result.rowcount)
        return result.rowcount
