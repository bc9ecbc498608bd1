"""Owner model: the tenant bound to one messaging channel."""

from __future__ import annotations

import uuid

from sqlalchemy import (
    BigInteger,
    Column,
    Integer,
    LargeBinary,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db import Base
from app.models.mixins import TimestampMixin


class Owner(Base, TimestampMixin):
    """Channel tenant. Created lazily on the first event for an unseen channel id."""

    __tablename__ = "owners"

    __table_args__ = (
        UniqueConstraint("channel", "channel_id", name="uq_owners_channel_channel_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    channel = Column(String(32), nullable=False)
    channel_id = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    plan = Column(String(32), nullable=False, default="free")
    # Fernet token over a JSON object of channel secrets
    encrypted_credentials = Column(LargeBinary, nullable=True)

    total_messages = Column(Integer, nullable=False, default=0)
    total_sessions = Column(Integer, nullable=False, default=0)
    total_summaries = Column(Integer, nullable=False, default=0)
    ai_tokens_used = Column(BigInteger, nullable=False, default=0)

    rooms = relationship("Room", back_populates="owner")
