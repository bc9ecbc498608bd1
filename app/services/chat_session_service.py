"""Persistence of chat sessions: creation, optimistic log appends and status transitions."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.constants.session import MESSAGE_LOG_CAP, CloseReason, SessionStatus
from app.core.errors import (
    SessionConflictError,
    SessionLogFullError,
    SessionNotActiveError,
)
from app.infra.logging_config import get_logger
from app.models.chat_session import ChatSession
from app.models.room import Room
from app.utils.time import utcnow

logger = get_logger("chat_sessions")

APPEND_MAX_ATTEMPTS = 3


def generate_session_code(now: Optional[datetime] = None) -> str:
    """Human-readable ordinal code, e.g. CHAT-20260101-1a2b3c4d."""
    now = now or utcnow()
    return f"CHAT-{now:%Y%m%d}-{uuid.uuid4().hex[:8]}"


class ChatSessionService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_session(self, session_id: UUID) -> Optional[ChatSession]:
        return self.db.query(ChatSession).filter(ChatSession.id == session_id).first()

    def get_active_sessions(self, room_id: UUID) -> list[ChatSession]:
        """All active sessions of a room, earliest-started first."""
        return (
            self.db.query(ChatSession)
            .filter(
                ChatSession.room_id == room_id,
                ChatSession.status == SessionStatus.ACTIVE,
            )
            .order_by(ChatSession.start_time.asc(), ChatSession.created_at.asc())
            .all()
        )

    def create_session(self, room: Room, start_time: Optional[datetime] = None) -> ChatSession:
        """Insert a new active session. Raises IntegrityError if the room already has one."""
        start_time = start_time or utcnow()
        session = ChatSession(
            session_code=generate_session_code(start_time),
            room_id=room.id,
            owner_id=room.owner_id,
            room_name=room.name,
            room_type=room.room_type,
            external_room_id=room.external_room_id,
            status=SessionStatus.ACTIVE,
            start_time=start_time,
            message_log=[],
        )
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        return session

    def append_log_entry(
        self,
        session_id: UUID,
        entry: dict[str, Any],
        cap: int = MESSAGE_LOG_CAP,
        max_attempts: int = APPEND_MAX_ATTEMPTS,
    ) -> ChatSession:
        """
        Append one entry to the embedded log under the optimistic version check.

        Raises:
            SessionNotActiveError: the session is no longer active.
            SessionLogFullError: the log already holds ``cap`` entries.
            SessionConflictError: every attempt lost to a concurrent writer.
        """
        for attempt in range(1, max_attempts + 1):
            session = self.get_session(session_id)
            if session is None:
                raise SessionNotActiveError(f"Session {session_id} not found")
            self.db.refresh(session)
            if session.status != SessionStatus.ACTIVE:
                raise SessionNotActiveError(
                    f"Session {session.session_code} is {session.status}"
                )
            log = list(session.message_log or [])
            if len(log) >= cap:
                raise SessionLogFullError(
                    f"Session {session.session_code} log holds {len(log)} entries"
                )
            session.message_log = log + [entry]
            try:
                self.db.commit()
            except StaleDataError:
                self.db.rollback()
                logger.info(
                    "Concurrent update on session %s, retrying append (%d/%d)",
                    session_id,
                    attempt,
                    max_attempts,
                )
                continue
            self.db.refresh(session)
            return session
        raise SessionConflictError(
            f"Could not append to session {session_id} after {max_attempts} attempts"
        )

    def begin_summarizing(self, session_id: UUID, reason: CloseReason) -> bool:
        """
        Move active → summarizing. Returns False when another caller already did it
        (or the session is no longer active).
        """
        now = utcnow()
        result = self.db.execute(
            update(ChatSession)
            .where(
                ChatSession.id == session_id,
                ChatSession.status == SessionStatus.ACTIVE,
            )
            .values(
                status=SessionStatus.SUMMARIZING,
                close_reason=str(reason),
                end_time=now,
                updated_at=now,
                version=ChatSession.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def mark_closed(
        self,
        session_id: UUID,
        summary_id: Optional[UUID] = None,
        close_reason: Optional[CloseReason] = None,
        from_statuses: Sequence[str] = (
            SessionStatus.ACTIVE,
            SessionStatus.SUMMARIZING,
        ),
    ) -> bool:
        """Force the session to closed from any of ``from_statuses``; closed is terminal."""
        now = utcnow()
        values: dict[str, Any] = {
            "status": SessionStatus.CLOSED,
            "end_time": func.coalesce(ChatSession.end_time, now),
            "updated_at": now,
            "version": ChatSession.version + 1,
        }
        if summary_id is not None:
            values["summary_id"] = summary_id
        if close_reason is not None:
            values["close_reason"] = str(close_reason)
        result = self.db.execute(
            update(ChatSession)
            .where(
                ChatSession.id == session_id,
                ChatSession.status.in_([str(s) for s in from_statuses]),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def rooms_with_duplicate_active(self) -> list[UUID]:
        rows = (
            self.db.query(ChatSession.room_id)
            .filter(ChatSession.status == SessionStatus.ACTIVE)
            .group_by(ChatSession.room_id)
            .having(func.count(ChatSession.id) > 1)
            .all()
        )
        return [row[0] for row in rows]

    def stale_summarizing(self, cutoff: datetime) -> list[ChatSession]:
        return (
            self.db.query(ChatSession)
            .filter(
                ChatSession.status == SessionStatus.SUMMARIZING,
                ChatSession.updated_at < cutoff,
            )
            .all()
        )

    def expired_active(self, cutoff: datetime) -> list[ChatSession]:
        """Active sessions started before ``cutoff``, oldest first."""
        return (
            self.db.query(ChatSession)
            .filter(
                ChatSession.status == SessionStatus.ACTIVE,
                ChatSession.start_time < cutoff,
            )
            .order_by(ChatSession.start_time.asc())
            .all()
        )

    def attach_summary(self, session_id: UUID, summary_id: UUID) -> bool:
        """Point a closed session at its summary without touching its status."""
        result = self.db.execute(
            update(ChatSession)
            .where(
                ChatSession.id == session_id,
                ChatSession.status == SessionStatus.CLOSED,
            )
            .values(
                summary_id=summary_id,
                updated_at=utcnow(),
                version=ChatSession.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def search_query(
        self,
        status: Optional[str] = None,
        room_id: Optional[UUID] = None,
    ) -> Select:
        """Select statement for paginated listings, newest first."""
        stmt = select(ChatSession)
        if status:
            stmt = stmt.where(ChatSession.status == status)
        if room_id:
            stmt = stmt.where(ChatSession.room_id == room_id)
        return stmt.order_by(ChatSession.start_time.desc())
