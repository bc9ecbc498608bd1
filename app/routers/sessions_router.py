"""Sessions API: list, get, messages, summary, export, manual close and on-demand summary."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi_pagination import Page, Params
from fastapi_pagination.ext.sqlalchemy import paginate
from sqlalchemy.orm import Session

from app.commands.summarize_session_command import SummarizeSessionCommand
from app.constants.session import CloseReason, SessionStatus, SummaryStatus
from app.db import get_db
from app.models.chat_session import ChatSession
from app.routers.utils.dependencies import get_chat_session_by_id, get_summary_runner
from app.schemas.chat_session import (
    ChatSessionDetail,
    ChatSessionRead,
    DualWriteAudit,
    MessageRead,
    SessionExport,
)
from app.schemas.summary import SummaryRead
from app.services.chat_session_service import ChatSessionService
from app.services.message_service import MessageService
from app.services.session_manager import SessionManager
from app.services.summary_service import SummaryService
from app.services.transcript import build_transcript, messages_from_log
from app.workers.llm import LLMRunner

sessions_router = APIRouter(prefix="/sessions", tags=["Session"])


@sessions_router.get("", response_model=Page[ChatSessionRead])
def list_sessions(
    params: Params = Depends(),
    status: Optional[str] = Query(None),
    room_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db),
) -> Page[ChatSessionRead]:
    """List sessions, newest first, optionally filtered by status and room."""
    stmt = ChatSessionService(db).search_query(status=status, room_id=room_id)
    return paginate(
        db,
        stmt,
        params=params,
        transformer=lambda items: [ChatSessionRead.model_validate(s) for s in items],
    )


@sessions_router.get("/{session_id}", response_model=ChatSessionDetail)
def get_session(
    session: ChatSession = Depends(get_chat_session_by_id),
) -> ChatSessionDetail:
    """Get a session by ID, including its embedded message log."""
    return ChatSessionDetail.model_validate(session)


@sessions_router.get("/{session_id}/messages", response_model=Page[MessageRead])
def list_session_messages(
    params: Params = Depends(),
    session: ChatSession = Depends(get_chat_session_by_id),
    db: Session = Depends(get_db),
) -> Page[MessageRead]:
    """Message records of a session in timestamp order."""
    stmt = MessageService(db).session_messages_query(session.id)
    return paginate(
        db,
        stmt,
        params=params,
        transformer=lambda items: [MessageRead.model_validate(m) for m in items],
    )


@sessions_router.get("/{session_id}/summary", response_model=SummaryRead)
def get_session_summary(
    session: ChatSession = Depends(get_chat_session_by_id),
    db: Session = Depends(get_db),
) -> SummaryRead:
    summary = SummaryService(db).get_for_session(session.id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Summary not found")
    return SummaryRead.model_validate(summary)


@sessions_router.get("/{session_id}/export", response_model=SessionExport)
def export_session(
    session: ChatSession = Depends(get_chat_session_by_id),
    db: Session = Depends(get_db),
) -> SessionExport:
    """Session metadata, all messages, summary and the transcript in one document."""
    messages = MessageService(db).list_for_session(session.id)
    summary = SummaryService(db).get_for_session(session.id)
    transcript = build_transcript(messages or messages_from_log(session))
    return SessionExport(
        session=ChatSessionDetail.model_validate(session),
        messages=[MessageRead.model_validate(m) for m in messages],
        summary=SummaryRead.model_validate(summary) if summary else None,
        transcript=transcript,
    )


@sessions_router.get("/{session_id}/audit", response_model=DualWriteAudit)
def audit_session(
    session: ChatSession = Depends(get_chat_session_by_id),
    db: Session = Depends(get_db),
) -> DualWriteAudit:
    """Compare the embedded log with the Message records of the session."""
    return SessionManager(db).audit_dual_write(session)


@sessions_router.post("/{session_id}/close", response_model=ChatSessionRead)
async def close_session(
    session: ChatSession = Depends(get_chat_session_by_id),
    db: Session = Depends(get_db),
    runner: LLMRunner = Depends(get_summary_runner),
) -> ChatSessionRead:
    """Close an active session now and summarize it."""
    if session.status != SessionStatus.ACTIVE:
        raise HTTPException(status_code=400, detail="Session is not active")
    await SessionManager(db, runner=runner).close_and_summarize(
        session, CloseReason.MANUAL
    )
    db.refresh(session)
    return ChatSessionRead.model_validate(session)


@sessions_router.post("/{session_id}/summary", response_model=SummaryRead)
async def generate_session_summary(
    session: ChatSession = Depends(get_chat_session_by_id),
    db: Session = Depends(get_db),
    runner: LLMRunner = Depends(get_summary_runner),
) -> SummaryRead:
    """
    Summarize a session on demand.

    An active session is closed first; a closed session gets a new summary
    only when it has none or the previous attempt failed.
    """
    if session.status == SessionStatus.SUMMARIZING:
        raise HTTPException(status_code=409, detail="Session is being summarized")
    message_count = max(
        MessageService(db).count_for_session(session.id), session.message_count
    )
    if message_count < 1:
        raise HTTPException(status_code=400, detail="Session has no messages")
    existing = SummaryService(db).get_for_session(session.id)
    if existing is not None and existing.status != SummaryStatus.FAILED:
        raise HTTPException(
            status_code=409, detail=f"Session already has a {existing.status} summary"
        )

    if session.status == SessionStatus.ACTIVE:
        summary = await SessionManager(db, runner=runner).close_and_summarize(
            session, CloseReason.MANUAL
        )
    else:
        summary = await SummarizeSessionCommand(db, runner=runner).execute(session.id)
    if summary is None:
        raise HTTPException(status_code=409, detail="Session is already being summarized")
    return SummaryRead.model_validate(summary)
