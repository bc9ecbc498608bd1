"""
Platform adapter interface.

Adapters encapsulate platform-specific logic and expose normalized events
to the ingestion pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from app.constants.session import ChannelType
from app.schemas.events import ImageContent, InboundMessage, PlatformEvent


class BasePlatformAdapter(ABC):
    """Contract for platform adapters. New platforms implement this interface."""

    channel: ChannelType

    @abstractmethod
    def parse_webhook(self, raw_payload: dict[str, Any]) -> list[PlatformEvent]:
        """Parse one webhook delivery into normalized events, in delivery order."""
        ...

    @abstractmethod
    async def fetch_media(self, content: ImageContent) -> tuple[bytes, str]:
        """Download media content. Return (bytes, content type); raise MediaFetchError on failure."""
        ...

    async def resolve_room_name(self, message: InboundMessage) -> Optional[str]:
        """Display name of a room seen for the first time. None lets the caller pick a default."""
        return message.room_name

    async def resolve_sender_name(self, message: InboundMessage) -> Optional[str]:
        return message.sender_name
