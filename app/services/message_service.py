"""Insert-only persistence of Message records."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from app.models.message import Message


class MessageService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create_message(self, **fields: Any) -> Message:
        message = Message(**fields)
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def list_for_session(self, session_id: UUID) -> list[Message]:
        """Messages of a session in timestamp order (authoritative for summarization)."""
        return (
            self.db.query(Message)
            .filter(Message.session_id == session_id)
            .order_by(Message.timestamp.asc(), Message.id.asc())
            .all()
        )

    def count_for_session(self, session_id: UUID) -> int:
        return self.db.query(Message).filter(Message.session_id == session_id).count()

    def session_messages_query(self, session_id: UUID) -> Select:
        return (
            select(Message)
            .where(Message.session_id == session_id)
            .order_by(Message.timestamp.asc(), Message.id.asc())
        )
