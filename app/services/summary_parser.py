"""
Parsing of provider responses into summary fields.

A JSON object in the response is validated and used as-is; anything else
degrades to the raw text with keyword-frequency topics, labeled
``keyword_fallback`` so callers can tell the two apart.
"""

from __future__ import annotations

import json
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from app.constants.session import SummaryParseMode
from app.core.errors import SummaryGenerationError
from app.schemas.summary import SummaryAnalysis, SummaryPayload

JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
WORD_RE = re.compile(r"\w+")

STOPWORDS = frozenset(
    [
        "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
        "by", "is", "are", "was", "were", "be", "been", "being", "have", "has",
        "had", "do", "does", "did", "will", "would", "could", "should", "may",
        "might", "can", "this", "that", "these", "those",
    ]
)
TOPIC_LIMIT = 5
MIN_TOPIC_LENGTH = 4


@dataclass
class ParsedSummary:
    content: str
    key_topics: list[str]
    analysis: dict[str, Any] = field(default_factory=dict)
    parse_mode: SummaryParseMode = SummaryParseMode.STRUCTURED


def extract_topics(text: str, limit: int = TOPIC_LIMIT) -> list[str]:
    """Most frequent non-stopword tokens longer than 3 characters; ties keep first-seen order."""
    words = [
        w
        for w in WORD_RE.findall(text.lower())
        if len(w) >= MIN_TOPIC_LENGTH and w not in STOPWORDS
    ]
    return [word for word, _ in Counter(words).most_common(limit)]


def _extract_payload(text: str) -> SummaryPayload | None:
    match = JSON_OBJECT_RE.search(text)
    if match is None:
        return None
    try:
        data = json.loads(match.group(0))
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return SummaryPayload.model_validate(data)
    except ValidationError:
        return None


def parse_summary_response(text: str) -> ParsedSummary:
    """
    Raises:
        SummaryGenerationError: the response is empty.
    """
    if not text or not text.strip():
        raise SummaryGenerationError("Empty response from AI provider")

    payload = _extract_payload(text)
    # An object without a summary (e.g. {"error": ...}) is not a structured answer
    if payload is not None and (payload.summary or "").strip():
        return ParsedSummary(
            content=payload.summary.strip(),
            key_topics=payload.key_topics,
            analysis=payload.analysis.model_dump(),
            parse_mode=SummaryParseMode.STRUCTURED,
        )

    return ParsedSummary(
        content=text.strip(),
        key_topics=extract_topics(text),
        analysis=SummaryAnalysis().model_dump(),
        parse_mode=SummaryParseMode.KEYWORD_FALLBACK,
    )
