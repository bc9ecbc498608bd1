"""Room model: one conversation endpoint (direct chat or group) under an owner."""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db import Base
from app.models.mixins import TimestampMixin


class Room(Base, TimestampMixin):
    __tablename__ = "rooms"

    __table_args__ = (
        UniqueConstraint(
            "owner_id", "external_room_id", name="uq_rooms_owner_external_room"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(
        Uuid, ForeignKey("owners.id", ondelete="CASCADE"), nullable=False
    )
    external_room_id = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    room_type = Column(String(16), nullable=False)  # 'individual' | 'group'
    is_active = Column(Boolean, nullable=False, default=True)

    total_sessions = Column(Integer, nullable=False, default=0)
    total_messages = Column(Integer, nullable=False, default=0)
    total_summaries = Column(Integer, nullable=False, default=0)
    last_activity_at = Column(DateTime(timezone=True), nullable=True)

    owner = relationship("Owner", back_populates="rooms")
