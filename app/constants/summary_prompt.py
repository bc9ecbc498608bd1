class SummaryPrompt:
    """Prompt template for session summarization."""

    TEMPLATE = """You are an AI assistant specialized in analyzing and summarizing chat conversations. Please analyze the following conversation and provide a comprehensive summary.

CONVERSATION DETAILS:
- Session ID: {session_code}
- Room: {room_name} ({room_type})
- Duration: {duration}
- Total Messages: {message_count}

CONVERSATION:
{transcript}

ANALYSIS INSTRUCTIONS:
Please provide a detailed analysis in the following JSON format:

{{
  "summary": "A comprehensive 2-3 paragraph summary of the conversation including main topics, key decisions, and outcomes",
  "key_topics": ["topic1", "topic2", "topic3"],
  "sentiment": "positive/neutral/negative",
  "urgency": "low/medium/high",
  "category": "general category of the conversation",
  "action_items": ["action item 1", "action item 2"],
  "participants_analysis": {{
    "total_participants": number,
    "message_distribution": "description of who participated most",
    "engagement_level": "high/medium/low"
  }},
  "conversation_highlights": [
    "Most important points or decisions made"
  ],
  "follow_up_needed": "yes/no",
  "tags": ["tag1", "tag2", "tag3"]
}}

Focus on:
1. Main discussion topics and themes
2. Any decisions made or conclusions reached
3. Action items or follow-ups mentioned
4. Overall sentiment and tone
5. Important information or insights shared
6. Questions asked and answered

Provide objective, factual analysis while being comprehensive yet concise."""
