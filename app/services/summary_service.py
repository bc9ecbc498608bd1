"""Summary rows: created in processing, moved exactly once to a terminal status."""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import Select, select, update
from sqlalchemy.orm import Session

from app.constants.session import SummaryStatus
from app.core.errors import SummaryStateError
from app.models.chat_session import ChatSession
from app.models.summary import Summary
from app.utils.time import utcnow


class SummaryService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_summary(self, summary_id: UUID) -> Optional[Summary]:
        return self.db.query(Summary).filter(Summary.id == summary_id).first()

    def get_for_session(self, session_id: UUID) -> Optional[Summary]:
        return self.db.query(Summary).filter(Summary.session_id == session_id).first()

    def create_processing(self, session: ChatSession) -> Summary:
        summary = Summary(
            session_id=session.id,
            room_id=session.room_id,
            owner_id=session.owner_id,
            status=SummaryStatus.PROCESSING,
            key_topics=[],
        )
        self.db.add(summary)
        self.db.commit()
        self.db.refresh(summary)
        return summary

    def mark_completed(
        self,
        summary_id: UUID,
        content: str,
        key_topics: list[str],
        analysis: dict[str, Any],
        parse_mode: str,
        model_name: Optional[str],
        tokens_used: int,
        processing_time_ms: int,
        estimated_cost: float,
    ) -> Summary:
        return self._finish(
            summary_id,
            status=SummaryStatus.COMPLETED,
            content=content,
            key_topics=key_topics,
            analysis=analysis,
            parse_mode=parse_mode,
            model_name=model_name,
            tokens_used=tokens_used,
            processing_time_ms=processing_time_ms,
            estimated_cost=estimated_cost,
        )

    def mark_failed(
        self,
        summary_id: UUID,
        error_message: str,
        model_name: Optional[str] = None,
        processing_time_ms: Optional[int] = None,
    ) -> Summary:
        return self._finish(
            summary_id,
            status=SummaryStatus.FAILED,
            error_message=error_message or "Summarization failed",
            model_name=model_name,
            processing_time_ms=processing_time_ms,
        )

    def reset_for_retry(self, summary_id: UUID) -> Summary:
        """
        Move a failed summary back to processing so it can be generated again.

        Raises:
            SummaryStateError: the summary is not failed.
        """
        result = self.db.execute(
            update(Summary)
            .where(
                Summary.id == summary_id,
                Summary.status == SummaryStatus.FAILED,
            )
            .values(
                status=SummaryStatus.PROCESSING,
                error_message=None,
                completed_at=None,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount != 1:
            raise SummaryStateError(f"Summary {summary_id} is not failed")
        summary = self.get_summary(summary_id)
        self.db.refresh(summary)
        return summary

    def _finish(self, summary_id: UUID, **values: Any) -> Summary:
        """Conditional processing → terminal update; a second attempt raises."""
        now = utcnow()
        values.setdefault("completed_at", now)
        values["updated_at"] = now
        result = self.db.execute(
            update(Summary)
            .where(
                Summary.id == summary_id,
                Summary.status == SummaryStatus.PROCESSING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount != 1:
            raise SummaryStateError(f"Summary {summary_id} is not processing")
        summary = self.get_summary(summary_id)
        self.db.refresh(summary)
        return summary

    def search_query(self, status: Optional[str] = None) -> Select:
        stmt = select(Summary)
        if status:
            stmt = stmt.where(Summary.status == status)
        return stmt.order_by(Summary.created_at.desc())
