"""
ChatSession model: a bounded conversation unit for one room.

The embedded ``message_log`` is a capped, denormalized copy of the session's
messages; the ``messages`` table holds the authoritative records.
"""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship

from app.db import Base
from app.models.mixins import TimestampMixin
from app.models.types import JSONType
from app.utils.time import utcnow


class ChatSession(Base, TimestampMixin):
    __tablename__ = "chat_sessions"

    __table_args__ = (
        # At most one active session per room
        Index(
            "uq_chat_sessions_room_active",
            "room_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("ix_chat_sessions_room_status", "room_id", "status"),
        Index("ix_chat_sessions_status_updated", "status", "updated_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_code = Column(String(32), unique=True, nullable=False)
    room_id = Column(Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    owner_id = Column(
        Uuid, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False
    )
    room_name = Column(String(255), nullable=True)
    room_type = Column(String(16), nullable=True)
    external_room_id = Column(String(255), nullable=True)

    status = Column(String(16), nullable=False, default="active")
    start_time = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    end_time = Column(DateTime(timezone=True), nullable=True)
    close_reason = Column(String(32), nullable=True)

    message_log = Column(JSONType, nullable=False, default=list)
    # Not a foreign key: summaries reference sessions, not the other way round
    summary_id = Column(Uuid, nullable=True)
    version = Column(Integer, nullable=False)

    room = relationship("Room")

    __mapper_args__ = {"version_id_col": version}

    @property
    def message_count(self) -> int:
        return len(self.message_log or [])
