"""RawEvent model: unprocessed copy of an inbound platform event."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, String

from app.db import Base
from app.models.types import JSONType
from app.utils.time import utcnow


class RawEvent(Base):
    """Append-only audit record keyed by the platform event id; purged after ``expires_at``."""

    __tablename__ = "raw_events"

    id = Column(String(255), primary_key=True)
    channel = Column(String(32), nullable=False)
    event_type = Column(String(64), nullable=False)
    user_id = Column(String(255), nullable=True)
    payload = Column(JSONType, nullable=False)
    received_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
