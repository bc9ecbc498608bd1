"""Domain exceptions raised by the session and summarization services."""


class ChatDigestError(Exception):
    """Base class for domain errors."""


class SessionStateError(ChatDigestError):
    """A session was asked to make a transition its current status does not allow."""


class SessionNotActiveError(SessionStateError):
    """The session stopped being active before the operation could apply."""


class SessionLogFullError(ChatDigestError):
    """The embedded message log already holds the maximum number of entries."""


class SessionConflictError(ChatDigestError):
    """A concurrent writer kept winning the optimistic version check."""


class SummaryStateError(ChatDigestError):
    """A summary that already reached a terminal status was mutated again."""


class MediaFetchError(ChatDigestError):
    """Media content could not be downloaded or failed validation."""


class SummaryGenerationError(ChatDigestError):
    """The AI provider returned nothing usable."""
