"""Message model: immutable, independently queryable record of one chat message."""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)

from app.db import Base
from app.utils.time import utcnow


class Message(Base):
    """Insert-only; never mutated after creation."""

    __tablename__ = "messages"

    __table_args__ = (
        Index("ix_messages_session_timestamp", "session_id", "timestamp"),
        Index("ix_messages_room_timestamp", "room_id", "timestamp"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(
        Uuid, ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False
    )
    room_id = Column(Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    owner_id = Column(
        Uuid, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False
    )
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    direction = Column(String(16), nullable=False)  # 'user' | 'bot' | 'system'
    message_type = Column(String(32), nullable=False)
    content = Column(Text, nullable=True)
    external_message_id = Column(String(255), nullable=True, index=True)

    sender_external_id = Column(String(255), nullable=True)
    sender_name = Column(String(255), nullable=True)
    sender_role = Column(String(32), nullable=True)
    room_type = Column(String(16), nullable=True)
    group_external_id = Column(String(255), nullable=True)
    group_name = Column(String(255), nullable=True)

    media_asset_id = Column(Uuid, nullable=True)
    media_status = Column(String(16), nullable=True)  # 'stored' | 'failed'
    file_name = Column(String(512), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    message_size = Column(Integer, nullable=False, default=0)
