from functools import lru_cache
from uuid import UUID

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from app.adapters.line import LineAdapter
from app.adapters.telegram import TelegramAdapter
from app.config import get_settings
from app.db import get_db
from app.models.chat_session import ChatSession
from app.models.room import Room
from app.models.summary import Summary
from app.services.chat_session_service import ChatSessionService
from app.services.identity_service import IdentityService
from app.services.summary_service import SummaryService
from app.workers.llm import LLMRunner, build_summary_runner_from_env


@lru_cache(maxsize=1)
def get_summary_runner() -> LLMRunner:
    """FastAPI dependency: process-wide summarization runner."""
    return build_summary_runner_from_env()


def get_line_adapter() -> LineAdapter | None:
    """Return configured LineAdapter or None if LINE is disabled."""
    settings = get_settings()
    if not settings.line_enabled:
        return None
    return LineAdapter(
        channel_access_token=settings.line_channel_access_token,
        channel_id=settings.line_channel_id,
        api_base=settings.line_api_base,
        data_api_base=settings.line_data_api_base,
        timeout_seconds=settings.media_fetch_timeout_seconds,
    )


def get_telegram_adapter() -> TelegramAdapter | None:
    """Return configured TelegramAdapter or None if Telegram is disabled."""
    settings = get_settings()
    if not settings.telegram_enabled or not settings.telegram_bot_token:
        return None
    return TelegramAdapter(bot_token=settings.telegram_bot_token)


def get_chat_session_by_id(
    session_id: UUID,
    db: Session = Depends(get_db),
) -> ChatSession:
    """FastAPI dependency to get a chat session by ID."""
    session = ChatSessionService(db).get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def get_room_by_id(
    room_id: UUID,
    db: Session = Depends(get_db),
) -> Room:
    """FastAPI dependency to get a room by ID."""
    room = IdentityService(db).get_room(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


def get_summary_by_id(
    summary_id: UUID,
    db: Session = Depends(get_db),
) -> Summary:
    """FastAPI dependency to get a summary by ID."""
    summary = SummaryService(db).get_summary(summary_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Summary not found")
    return summary
