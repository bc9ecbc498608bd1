"""
Command to summarize a session that entered summarizing.

Builds the transcript, calls the AI provider once, parses or falls back,
persists the terminal Summary and always leaves the session closed.
"""

from __future__ import annotations

import time
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.constants.session import SummaryStatus
from app.constants.summary_prompt import SummaryPrompt
from app.core.errors import SummaryStateError
from app.infra.logging_config import get_logger
from app.models.chat_session import ChatSession
from app.models.message import Message
from app.models.summary import Summary
from app.services.chat_session_service import ChatSessionService
from app.services.identity_service import IdentityService
from app.services.message_service import MessageService
from app.services.summary_parser import parse_summary_response
from app.services.summary_service import SummaryService
from app.services.transcript import (
    build_transcript,
    format_duration,
    messages_from_log,
)
from app.workers.llm import LLMRunner, build_summary_runner_from_env


def estimate_cost(
    tokens_used: int, input_cost_per_1k: float, output_cost_per_1k: float
) -> float:
    """Advisory cost assuming a 50/50 input/output token split."""
    half = tokens_used * 0.5
    cost = (half / 1000) * input_cost_per_1k + (half / 1000) * output_cost_per_1k
    return round(cost, 6)


def build_summary_prompt(session: ChatSession, messages: list[Message]) -> str:
    return SummaryPrompt.TEMPLATE.format(
        session_code=session.session_code,
        room_name=session.room_name or "Unknown room",
        room_type=session.room_type or "individual",
        duration=format_duration(session.start_time, session.end_time),
        message_count=len(messages),
        transcript=build_transcript(messages),
    )


class SummarizeSessionCommand:
    def __init__(
        self,
        db: Session,
        runner: Optional[LLMRunner] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self._runner = runner
        self.sessions = ChatSessionService(db)
        self.summaries = SummaryService(db)
        self.messages = MessageService(db)
        self.identity = IdentityService(db)
        self.logger = get_logger("summarize")

    @property
    def runner(self) -> LLMRunner:
        if self._runner is None:
            self._runner = build_summary_runner_from_env()
        return self._runner

    def load_messages(self, session: ChatSession) -> list[Message]:
        """Message records first; the embedded log only when none were written."""
        messages = self.messages.list_for_session(session.id)
        if messages:
            return messages
        if session.message_log:
            self.logger.warning(
                "Session %s has no Message records, using its embedded log",
                session.session_code,
            )
        return messages_from_log(session)

    def start_summary(self, session: ChatSession) -> Summary:
        """
        Processing summary for the session; a failed earlier attempt is reused.

        Raises:
            SummaryStateError: the session already has a processing or completed summary.
        """
        existing = self.summaries.get_for_session(session.id)
        if existing is None:
            return self.summaries.create_processing(session)
        return self.summaries.reset_for_retry(existing.id)

    async def execute(self, session_id: UUID) -> Optional[Summary]:
        """
        Summarize the session. Provider or parsing failures mark the summary
        failed; the session is closed in every case.
        """
        session = self.sessions.get_session(session_id)
        if session is None:
            self.logger.warning("Session %s not found, nothing to summarize", session_id)
            return None

        room_id, owner_id = session.room_id, session.owner_id
        summary: Optional[Summary] = None
        summary_id: Optional[UUID] = None
        started = time.monotonic()
        model_name: Optional[str] = None
        tokens_used = 0
        try:
            summary = self.start_summary(session)
            summary_id = summary.id
            messages = self.load_messages(session)
            prompt = build_summary_prompt(session, messages)
            model_name = getattr(self.runner, "model_name", None)
            completion = await self.runner.complete(prompt)
            model_name = completion.model_name or model_name
            parsed = parse_summary_response(completion.text)
            tokens_used = completion.tokens_used
            summary = self.summaries.mark_completed(
                summary_id,
                content=parsed.content,
                key_topics=parsed.key_topics,
                analysis=parsed.analysis,
                parse_mode=str(parsed.parse_mode),
                model_name=model_name,
                tokens_used=tokens_used,
                processing_time_ms=self._elapsed_ms(started),
                estimated_cost=estimate_cost(
                    tokens_used,
                    self.settings.summary_input_cost_per_1k,
                    self.settings.summary_output_cost_per_1k,
                ),
            )
            self.logger.info(
                "Summary %s completed for session %s (%s, %d tokens)",
                summary_id,
                session_id,
                parsed.parse_mode,
                tokens_used,
            )
        except Exception as e:
            self.db.rollback()
            self.logger.exception("Summarization of session %s failed", session_id)
            if summary_id is not None:
                summary = self._fail(
                    summary_id,
                    str(e) or type(e).__name__,
                    model_name=model_name,
                    processing_time_ms=self._elapsed_ms(started),
                )
        finally:
            self._close(session_id, summary_id)

        if summary is not None and summary.status == SummaryStatus.COMPLETED:
            self.identity.increment_counters(
                room_id, owner_id, summaries=1, tokens=tokens_used
            )
        return summary

    def _fail(
        self,
        summary_id: UUID,
        error_message: str,
        model_name: Optional[str],
        processing_time_ms: int,
    ) -> Optional[Summary]:
        try:
            return self.summaries.mark_failed(
                summary_id,
                error_message,
                model_name=model_name,
                processing_time_ms=processing_time_ms,
            )
        except SummaryStateError:
            # The stale sweep (or another worker) already finished it
            self.logger.warning("Summary %s already reached a terminal status", summary_id)
            summary = self.summaries.get_summary(summary_id)
            if summary is not None:
                self.db.refresh(summary)
            return summary
        except Exception:
            self.db.rollback()
            self.logger.exception("Could not mark summary %s failed", summary_id)
            return None

    def _close(self, session_id: UUID, summary_id: Optional[UUID]) -> None:
        try:
            closed = self.sessions.mark_closed(session_id, summary_id=summary_id)
            if not closed and summary_id is not None:
                self.sessions.attach_summary(session_id, summary_id)
        except Exception:
            self.db.rollback()
            self.logger.exception("Could not close session %s", session_id)

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
