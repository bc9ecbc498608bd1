"""Summary model: the AI-generated digest of one closed session."""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)

from app.db import Base
from app.models.mixins import TimestampMixin
from app.models.types import JSONType


class Summary(Base, TimestampMixin):
    """
    Created in ``processing`` and moved exactly once to ``completed`` or ``failed``.

    ``analysis`` keeps the structured fields of the provider response
    (sentiment, urgency, category, action items, participants analysis,
    highlights, follow-up flag, tags).
    """

    __tablename__ = "summaries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(
        Uuid,
        ForeignKey("chat_sessions.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    room_id = Column(Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    owner_id = Column(
        Uuid, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(String(16), nullable=False, default="processing")
    content = Column(Text, nullable=True)
    key_topics = Column(JSONType, nullable=False, default=list)
    analysis = Column(JSONType, nullable=True)
    parse_mode = Column(String(32), nullable=True)

    model_name = Column(String(128), nullable=True)
    tokens_used = Column(Integer, nullable=False, default=0)
    processing_time_ms = Column(Integer, nullable=True)
    estimated_cost = Column(Float, nullable=True)
    error_message = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
