"""
LINE Messaging API webhook payload schemas.

Matches the documented request body: ``{"destination": ..., "events": [...]}``.
Unknown fields are kept so the raw event store receives the full payload.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class LineSource(BaseModel):
    """Event source (user, group or multi-person chat)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    user_id: Optional[str] = Field(None, alias="userId")
    group_id: Optional[str] = Field(None, alias="groupId")
    room_id: Optional[str] = Field(None, alias="roomId")


class LineContentProvider(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str = "line"
    original_content_url: Optional[str] = Field(None, alias="originalContentUrl")


class LineMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    type: str
    text: Optional[str] = None
    file_name: Optional[str] = Field(None, alias="fileName")
    title: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    content_provider: Optional[LineContentProvider] = Field(
        None, alias="contentProvider"
    )


class LineDeliveryContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    is_redelivery: bool = Field(False, alias="isRedelivery")


class LineEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    timestamp: int  # epoch milliseconds
    webhook_event_id: Optional[str] = Field(None, alias="webhookEventId")
    source: Optional[LineSource] = None
    message: Optional[LineMessage] = None
    reply_token: Optional[str] = Field(None, alias="replyToken")
    delivery_context: Optional[LineDeliveryContext] = Field(
        None, alias="deliveryContext"
    )


class LineWebhookBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    destination: Optional[str] = None
    events: list[dict[str, Any]] = Field(default_factory=list)
