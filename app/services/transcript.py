"""Serialization of session messages into the transcript sent to the summarizer."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol

from app.constants.session import MessageDirection, RoomType, SenderRole
from app.models.chat_session import ChatSession
from app.models.message import Message
from app.utils.time import ensure_utc, utcnow


class TranscriptMessage(Protocol):
    timestamp: datetime
    direction: str
    message_type: str
    content: Optional[str]
    sender_name: Optional[str]
    sender_role: Optional[str]


def speaker_label(message: TranscriptMessage) -> str:
    if message.direction == MessageDirection.BOT:
        return "Bot"
    if message.direction == MessageDirection.SYSTEM:
        return "System"
    if message.sender_name:
        return message.sender_name
    if message.sender_role == SenderRole.GROUP_MEMBER:
        return "Group Member"
    return "User"


def format_line(message: TranscriptMessage) -> str:
    time = ensure_utc(message.timestamp).strftime("%H:%M:%S")
    speaker = speaker_label(message)
    text = message.content or ""
    if message.message_type == "text":
        return f"[{time}] {speaker}: {text}"
    return f"[{time}] {speaker}: [{message.message_type.upper()}] {text}"


def build_transcript(messages: Iterable[TranscriptMessage]) -> str:
    ordered = sorted(messages, key=lambda m: ensure_utc(m.timestamp))
    return "\n".join(format_line(m) for m in ordered)


def messages_from_log(session: ChatSession) -> list[Message]:
    """
    Rebuild transient Message records from the embedded log, for sessions whose
    Message rows are missing. Senders are unknown, so a generic role is used.
    """
    role = (
        SenderRole.GROUP_MEMBER
        if session.room_type == RoomType.GROUP
        else SenderRole.USER
    )
    messages = []
    for entry in session.message_log or []:
        timestamp = entry.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        messages.append(
            Message(
                session_id=session.id,
                room_id=session.room_id,
                owner_id=session.owner_id,
                timestamp=timestamp or session.start_time,
                direction=entry.get("direction") or MessageDirection.USER,
                message_type=entry.get("message_type") or "text",
                content=entry.get("message") or "",
                external_message_id=entry.get("external_message_id"),
                sender_role=role,
            )
        )
    return messages


def format_duration(start: datetime, end: Optional[datetime] = None) -> str:
    """Human-readable session duration, e.g. ``2h 5m`` or ``45 minutes (ongoing)``."""
    start = ensure_utc(start)
    if end is None:
        minutes = round((utcnow() - start).total_seconds() / 60)
        return f"{minutes} minutes (ongoing)"
    total_minutes = int((ensure_utc(end) - start).total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes} minutes"
