import json

import pytest

from app.constants.session import SummaryParseMode
from app.core.errors import SummaryGenerationError
from app.services.summary_parser import extract_topics, parse_summary_response
from tests.fixtures.llm_fixtures import STRUCTURED_RESPONSE


def test_structured_response():
    parsed = parse_summary_response(json.dumps(STRUCTURED_RESPONSE))
    assert parsed.parse_mode == SummaryParseMode.STRUCTURED
    assert parsed.content == STRUCTURED_RESPONSE["summary"]
    assert parsed.key_topics == ["release", "schedule"]
    assert parsed.analysis["sentiment"] == "positive"
    assert parsed.analysis["urgency"] == "medium"
    assert parsed.analysis["follow_up_needed"] == "yes"
    assert parsed.analysis["action_items"] == ["Prepare release notes"]


def test_json_embedded_in_prose():
    text = 'Here you go:\n```json\n{"summary": "Short chat", "key_topics": ["greeting"]}\n```'
    parsed = parse_summary_response(text)
    assert parsed.parse_mode == SummaryParseMode.STRUCTURED
    assert parsed.content == "Short chat"
    assert parsed.key_topics == ["greeting"]


def test_unknown_enum_values_fall_back_to_defaults():
    parsed = parse_summary_response(
        json.dumps({"summary": "x", "sentiment": "ecstatic", "urgency": None})
    )
    assert parsed.analysis["sentiment"] == "neutral"
    assert parsed.analysis["urgency"] == "low"
    assert parsed.analysis["category"] == "general"
    assert parsed.analysis["follow_up_needed"] == "no"


def test_plain_text_uses_keyword_fallback():
    text = (
        "Budget planning meeting. Budget approved, marketing budget increased, "
        "hiring plan postponed until marketing review."
    )
    parsed = parse_summary_response(text)
    assert parsed.parse_mode == SummaryParseMode.KEYWORD_FALLBACK
    assert parsed.content == text
    assert parsed.key_topics[:2] == ["budget", "marketing"]
    assert len(parsed.key_topics) <= 5
    assert parsed.analysis["sentiment"] == "neutral"


def test_malformed_json_uses_keyword_fallback():
    parsed = parse_summary_response('{"summary": "unterminated')
    assert parsed.parse_mode == SummaryParseMode.KEYWORD_FALLBACK


@pytest.mark.parametrize("text", ["", "   \n"])
def test_empty_response_raises(text):
    with pytest.raises(SummaryGenerationError):
        parse_summary_response(text)


def test_extract_topics_skips_stopwords_and_short_words():
    topics = extract_topics("that this with have the cat deploy deploy server")
    assert topics == ["deploy", "server"]


def test_json_without_summary_uses_keyword_fallback():
    text = '{"error": "context window exceeded while reading transcript"}'
    parsed = parse_summary_response(text)
    assert parsed.parse_mode == SummaryParseMode.KEYWORD_FALLBACK
    assert parsed.content == text
    assert "context" in parsed.key_topics
