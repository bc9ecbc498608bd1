"""
Normalized event contracts.

Adapters turn platform webhook bodies into these shapes; ingestion never
looks at platform payloads directly.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from app.constants.session import ChannelType, MessageDirection, RoomType


class TextContent(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    """Image attachment; the binary is fetched out-of-band by ``media_ref``."""

    kind: Literal["image"] = "image"
    media_ref: str
    # LINE contentProvider.type == "external"
    original_url: Optional[str] = None
    caption: Optional[str] = None


class OtherContent(BaseModel):
    """Any other platform message type (sticker, audio, video, file, location...)."""

    kind: Literal["other"] = "other"
    message_type: str
    text: str = ""
    file_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


MessageContent = Annotated[
    Union[TextContent, ImageContent, OtherContent], Field(discriminator="kind")
]


class InboundMessage(BaseModel):
    """Normalized inbound message (adapter → ingestion)."""

    channel: ChannelType
    channel_id: str
    external_room_id: str
    room_type: RoomType
    room_name: Optional[str] = None
    # Platform-native kind, e.g. LINE "user" | "group" | "room", Telegram chat type
    room_kind: Optional[str] = None
    sender_external_id: Optional[str] = None
    sender_name: Optional[str] = None
    external_message_id: Optional[str] = None
    timestamp: datetime
    direction: MessageDirection = MessageDirection.USER
    content: MessageContent

    @property
    def is_group(self) -> bool:
        return self.room_type == RoomType.GROUP


class PlatformEvent(BaseModel):
    """One event of a webhook delivery, with its raw payload kept for audit."""

    event_id: str
    channel: ChannelType
    channel_id: str
    event_type: str
    timestamp: datetime
    external_room_id: Optional[str] = None
    room_type: Optional[RoomType] = None
    user_id: Optional[str] = None
    message: Optional[InboundMessage] = None
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def room_key(self) -> Optional[str]:
        if self.external_room_id is None:
            return None
        return f"{self.channel}:{self.channel_id}:{self.external_room_id}"
