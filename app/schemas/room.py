"""Pydantic schemas for Room and Owner reads."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class RoomRead(BaseModel):
    id: UUID
    owner_id: UUID
    external_room_id: str
    name: str
    room_type: str
    is_active: bool
    total_sessions: int
    total_messages: int
    total_summaries: int
    last_activity_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
