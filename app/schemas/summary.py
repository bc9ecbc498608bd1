"""Pydantic schemas for summaries: provider payload validation and API reads."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

Sentiment = Literal["positive", "neutral", "negative"]
Urgency = Literal["low", "medium", "high"]
YesNo = Literal["yes", "no"]


def _normalize_choice(value: Any, allowed: tuple[str, ...], default: str) -> str:
    if value is None:
        return default
    if isinstance(value, bool):
        value = "yes" if value else "no"
    text = str(value).strip().lower()
    return text if text in allowed else default


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return []


class SummaryAnalysis(BaseModel):
    """Structured analysis fields of a summary."""

    sentiment: Sentiment = "neutral"
    urgency: Urgency = "low"
    category: str = "general"
    action_items: list[str] = Field(default_factory=list)
    participants_analysis: dict[str, Any] = Field(default_factory=dict)
    conversation_highlights: list[str] = Field(default_factory=list)
    follow_up_needed: YesNo = "no"
    tags: list[str] = Field(default_factory=list)

    @field_validator("sentiment", mode="before")
    @classmethod
    def _sentiment(cls, v: Any) -> str:
        return _normalize_choice(v, ("positive", "neutral", "negative"), "neutral")

    @field_validator("urgency", mode="before")
    @classmethod
    def _urgency(cls, v: Any) -> str:
        return _normalize_choice(v, ("low", "medium", "high"), "low")

    @field_validator("follow_up_needed", mode="before")
    @classmethod
    def _follow_up(cls, v: Any) -> str:
        return _normalize_choice(v, ("yes", "no"), "no")

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            return "general"
        return str(v).strip()

    @field_validator(
        "action_items", "conversation_highlights", "tags", mode="before"
    )
    @classmethod
    def _lists(cls, v: Any) -> list[str]:
        return _as_str_list(v)

    @field_validator("participants_analysis", mode="before")
    @classmethod
    def _participants(cls, v: Any) -> dict[str, Any]:
        return v if isinstance(v, dict) else {}


class SummaryPayload(SummaryAnalysis):
    """JSON object the provider is asked to return."""

    summary: Optional[str] = None
    key_topics: list[str] = Field(default_factory=list)

    @field_validator("key_topics", mode="before")
    @classmethod
    def _topics(cls, v: Any) -> list[str]:
        return _as_str_list(v)

    @property
    def analysis(self) -> SummaryAnalysis:
        return SummaryAnalysis.model_validate(
            self.model_dump(exclude={"summary", "key_topics"})
        )


class SummaryRead(BaseModel):
    """Summary for API responses."""

    id: UUID
    session_id: UUID
    room_id: UUID
    owner_id: UUID
    status: str
    content: Optional[str] = None
    key_topics: list[str] = Field(default_factory=list)
    analysis: Optional[dict[str, Any]] = None
    parse_mode: Optional[str] = None
    model_name: Optional[str] = None
    tokens_used: int = 0
    processing_time_ms: Optional[int] = None
    estimated_cost: Optional[float] = None
    error_message: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
