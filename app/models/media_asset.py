from __future__ import annotations

import uuid

from sqlalchemy import Column, Integer, LargeBinary, String, Uuid

from app.db import Base
from app.models.mixins import TimestampMixin


class MediaAsset(Base, TimestampMixin):
    """Downloaded image content attached to a message."""

    __tablename__ = "media_assets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    channel = Column(String(32), nullable=False)
    external_message_id = Column(String(255), nullable=True, index=True)
    content_type = Column(String(128), nullable=False)
    size_bytes = Column(Integer, nullable=False)
    data = Column(LargeBinary, nullable=False)
