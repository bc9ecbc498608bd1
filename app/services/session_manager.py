"""
SessionManager: owns a room's current session.

Enforces the single-active-session-per-room invariant, evaluates close triggers,
drives active → summarizing → closed, and repairs duplicate or stuck sessions.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.commands.summarize_session_command import SummarizeSessionCommand
from app.config import Settings, get_settings
from app.constants.session import (
    MESSAGE_LOG_CAP,
    CloseReason,
    SessionStatus,
    SummaryStatus,
)
from app.core.errors import (
    SessionConflictError,
    SessionLogFullError,
    SessionNotActiveError,
)
from app.infra.logging_config import get_logger
from app.models.chat_session import ChatSession
from app.models.room import Room
from app.models.summary import Summary
from app.schemas.chat_session import DualWriteAudit
from app.services.chat_session_service import ChatSessionService
from app.services.identity_service import IdentityService
from app.services.message_service import MessageService
from app.services.summary_service import SummaryService
from app.utils.time import ensure_utc, utcnow

if TYPE_CHECKING:
    from app.workers.llm import LLMRunner

logger = get_logger("session_manager")

APPEND_MAX_ROUNDS = 3


class SessionManager:
    def __init__(
        self,
        db: Session,
        runner: Optional[LLMRunner] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.db = db
        self.runner = runner
        self.settings = settings or get_settings()
        self._sessions = ChatSessionService(db)
        self._summaries = SummaryService(db)
        self._messages = MessageService(db)
        self._identity = IdentityService(db)

    def get_or_create_active_session(self, room: Room) -> ChatSession:
        active = self._sessions.get_active_sessions(room.id)
        if active:
            if len(active) > 1:
                logger.warning(
                    "Room %s has %d active sessions; using %s until reconciled",
                    room.id,
                    len(active),
                    active[0].session_code,
                )
            return active[0]
        try:
            session = self._sessions.create_session(room)
        except IntegrityError:
            # Lost the race: another writer created the room's active session
            self.db.rollback()
            active = self._sessions.get_active_sessions(room.id)
            if not active:
                raise
            return active[0]
        self._identity.increment_counters(room.id, room.owner_id, sessions=1)
        logger.info("Opened session %s for room %s", session.session_code, room.id)
        return session

    async def append_entry(self, room: Room, entry: dict[str, Any]) -> ChatSession:
        """
        Append a log entry to the room's active session.

        An expired session is closed (``timeout``) before the entry lands and
        a full log closes (``log_cap``) it; either way the session is summarized
        and the entry goes to a fresh one. A session that stopped being active
        is replaced by the room's current active session.
        """
        session = self.get_or_create_active_session(room)
        for _ in range(APPEND_MAX_ROUNDS):
            if self.is_expired(session):
                logger.info(
                    "Session %s expired before the new message, closing it",
                    session.session_code,
                )
                await self.close_and_summarize(session, CloseReason.TIMEOUT)
                session = self.get_or_create_active_session(room)
                continue
            try:
                return self._sessions.append_log_entry(session.id, entry)
            except SessionLogFullError:
                await self.close_and_summarize(session, CloseReason.LOG_CAP)
            except SessionNotActiveError:
                logger.info(
                    "Session %s stopped being active, switching to the room's current one",
                    session.id,
                )
            session = self.get_or_create_active_session(room)
        raise SessionConflictError(
            f"Could not append to an active session of room {room.id}"
        )

    def is_expired(self, session: ChatSession, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        age = now - ensure_utc(session.start_time)
        return age >= timedelta(hours=self.settings.session_timeout_hours)

    def should_close(
        self, session: ChatSession, now: Optional[datetime] = None
    ) -> Optional[CloseReason]:
        now = now or utcnow()
        count = session.message_count
        threshold = self.settings.session_max_messages
        if count >= threshold:
            return CloseReason.MESSAGE_LIMIT
        if count >= MESSAGE_LOG_CAP:
            return CloseReason.LOG_CAP
        if self.is_expired(session, now):
            return CloseReason.TIMEOUT
        return None

    async def evaluate_triggers(self, session: ChatSession) -> Optional[Summary]:
        reason = self.should_close(session)
        if reason is None:
            return None
        logger.info("Closing session %s: %s", session.session_code, reason)
        return await self.close_and_summarize(session, reason)

    async def close_and_summarize(
        self, session: ChatSession, reason: CloseReason
    ) -> Optional[Summary]:
        """
        Close the session and summarize it. Returns None when another caller
        already moved it out of active.
        """
        session_id = session.id
        if not self._sessions.begin_summarizing(session_id, reason):
            logger.info("Session %s is already closing", session_id)
            return None
        command = SummarizeSessionCommand(self.db, runner=self.runner)
        return await command.execute(session_id)

    async def close_expired_sessions(self) -> int:
        """Close and summarize active sessions older than the timeout (``auto_timeout``)."""
        cutoff = utcnow() - timedelta(hours=self.settings.session_timeout_hours)
        closed = 0
        for session in self._sessions.expired_active(cutoff):
            if not self._sessions.begin_summarizing(session.id, CloseReason.AUTO_TIMEOUT):
                continue
            closed += 1
            logger.info("Auto-closing expired session %s", session.session_code)
            await SummarizeSessionCommand(self.db, runner=self.runner).execute(session.id)
        return closed

    def reconcile_duplicate_active_sessions(self) -> int:
        """Keep the earliest-started active session per room, close the rest as reconciled."""
        closed = 0
        for room_id in self._sessions.rooms_with_duplicate_active():
            canonical, *duplicates = self._sessions.get_active_sessions(room_id)
            for duplicate in duplicates:
                if self._sessions.mark_closed(
                    duplicate.id,
                    close_reason=CloseReason.RECONCILED,
                    from_statuses=(SessionStatus.ACTIVE,),
                ):
                    closed += 1
                    logger.warning(
                        "Closed duplicate session %s of room %s (kept %s)",
                        duplicate.session_code,
                        room_id,
                        canonical.session_code,
                    )
        return closed

    def close_stale_summarizing(self, older_than: Optional[timedelta] = None) -> int:
        """Close sessions stuck in summarizing; their processing summaries are failed."""
        if older_than is None:
            older_than = timedelta(minutes=self.settings.summarizing_stale_minutes)
        cutoff = utcnow() - older_than
        closed = 0
        for session in self._sessions.stale_summarizing(cutoff):
            session_id = session.id
            summary = self._summaries.get_for_session(session_id)
            if summary is not None and summary.status == SummaryStatus.PROCESSING:
                summary = self._summaries.mark_failed(
                    summary.id, "Summarization interrupted"
                )
            if self._sessions.mark_closed(
                session_id,
                summary_id=summary.id if summary is not None else None,
                close_reason=CloseReason.INTERRUPTED,
                from_statuses=(SessionStatus.SUMMARIZING,),
            ):
                closed += 1
                logger.warning("Closed session %s stuck in summarizing", session_id)
        return closed

    def audit_dual_write(self, session: ChatSession) -> DualWriteAudit:
        """Compare the embedded log with the Message records of a session."""
        log = session.message_log or []
        messages = self._messages.list_for_session(session.id)
        log_ids = {e.get("external_message_id") for e in log} - {None}
        record_ids = {m.external_message_id for m in messages} - {None}
        missing_in_log = sorted(record_ids - log_ids)
        missing_records = sorted(log_ids - record_ids)
        return DualWriteAudit(
            session_id=session.id,
            log_count=len(log),
            message_count=len(messages),
            missing_in_log=missing_in_log,
            missing_records=missing_records,
            consistent=(
                len(log) == len(messages)
                and not missing_in_log
                and not missing_records
            ),
        )
