"""Pydantic schemas for ChatSession and Message reads."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.summary import SummaryRead


class MessageLogEntry(BaseModel):
    """One entry of a session's embedded message log."""

    timestamp: datetime
    direction: str
    message_type: str
    message: str = ""
    external_message_id: Optional[str] = None
    media_asset_id: Optional[str] = None


class ChatSessionRead(BaseModel):
    """Session for API responses (without the embedded log)."""

    id: UUID
    session_code: str
    room_id: UUID
    owner_id: UUID
    room_name: Optional[str] = None
    room_type: Optional[str] = None
    external_room_id: Optional[str] = None
    status: str
    start_time: datetime
    end_time: Optional[datetime] = None
    close_reason: Optional[str] = None
    summary_id: Optional[UUID] = None
    message_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ChatSessionDetail(ChatSessionRead):
    message_log: list[MessageLogEntry] = Field(default_factory=list)


class MessageRead(BaseModel):
    id: UUID
    session_id: UUID
    room_id: UUID
    timestamp: datetime
    direction: str
    message_type: str
    content: Optional[str] = None
    external_message_id: Optional[str] = None
    sender_external_id: Optional[str] = None
    sender_name: Optional[str] = None
    sender_role: Optional[str] = None
    room_type: Optional[str] = None
    group_external_id: Optional[str] = None
    group_name: Optional[str] = None
    media_asset_id: Optional[UUID] = None
    media_status: Optional[str] = None
    file_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    message_size: int = 0

    model_config = {"from_attributes": True}


class SessionExport(BaseModel):
    """Full export of one session: metadata, messages, summary and transcript."""

    session: ChatSessionDetail
    messages: list[MessageRead]
    summary: Optional[SummaryRead] = None
    transcript: str


class DualWriteAudit(BaseModel):
    """Embedded-log count vs Message record count for one session."""

    session_id: UUID
    log_count: int
    message_count: int
    missing_in_log: list[str] = Field(default_factory=list)
    missing_records: list[str] = Field(default_factory=list)
    consistent: bool
