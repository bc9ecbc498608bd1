"""Status and classification values for sessions, messages and summaries."""

from enum import StrEnum

# Embedded message log cap per session document
MESSAGE_LOG_CAP = 100


class ChannelType(StrEnum):
    LINE = "line"
    TELEGRAM = "telegram"


class RoomType(StrEnum):
    INDIVIDUAL = "individual"
    GROUP = "group"


class SessionStatus(StrEnum):
    ACTIVE = "active"
    SUMMARIZING = "summarizing"
    CLOSED = "closed"


class CloseReason(StrEnum):
    MESSAGE_LIMIT = "message_limit"
    TIMEOUT = "timeout"
    LOG_CAP = "log_cap"
    RECONCILED = "reconciled"
    INTERRUPTED = "interrupted"
    MANUAL = "manual"
    AUTO_TIMEOUT = "auto_timeout"


class MessageDirection(StrEnum):
    USER = "user"
    BOT = "bot"
    SYSTEM = "system"


class SenderRole(StrEnum):
    USER = "user"
    GROUP_MEMBER = "group_member"
    BOT = "bot"
    SYSTEM = "system"


class MediaStatus(StrEnum):
    STORED = "stored"
    FAILED = "failed"


class SummaryStatus(StrEnum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SummaryParseMode(StrEnum):
    STRUCTURED = "structured"
    # Degraded path: free text + keyword-frequency topics
    KEYWORD_FALLBACK = "keyword_fallback"
