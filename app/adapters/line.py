"""
LINE Messaging API adapter.

Parses webhook bodies (``{"destination", "events"}``), looks up group and
profile names, and downloads message content. REST calls use ``requests``
in a worker thread so the event loop is never blocked.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import requests
from pydantic import ValidationError

from app.adapters.base import BasePlatformAdapter
from app.constants.session import ChannelType, RoomType
from app.core.errors import MediaFetchError
from app.schemas.events import (
    ImageContent,
    InboundMessage,
    MessageContent,
    OtherContent,
    PlatformEvent,
    TextContent,
)
from app.schemas.line import LineEvent, LineMessage, LineSource

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10


def _event_time(timestamp_ms: int) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def _room_of(source: Optional[LineSource]) -> tuple[Optional[str], Optional[RoomType]]:
    if source is None:
        return None, None
    if source.type == "group" and source.group_id:
        return source.group_id, RoomType.GROUP
    if source.type == "room" and source.room_id:
        return source.room_id, RoomType.GROUP
    return source.user_id, RoomType.INDIVIDUAL


def line_message_content(message: LineMessage) -> MessageContent:
    if message.type == "text":
        return TextContent(text=message.text or "")
    if message.type == "image":
        provider = message.content_provider
        original_url = (
            provider.original_content_url
            if provider is not None and provider.type == "external"
            else None
        )
        return ImageContent(media_ref=message.id, original_url=original_url)
    if message.type == "location":
        description = ", ".join(
            part for part in (message.title, message.address) if part
        )
        return OtherContent(
            message_type="location",
            text=description or "location message",
            latitude=message.latitude,
            longitude=message.longitude,
        )
    if message.type == "file":
        return OtherContent(
            message_type="file",
            text=message.file_name or "file message",
            file_name=message.file_name,
        )
    return OtherContent(message_type=message.type, text=f"{message.type} message")


class LineAdapter(BasePlatformAdapter):
    """LINE adapter: parse webhook batches, resolve names, fetch content."""

    channel = ChannelType.LINE

    def __init__(
        self,
        channel_access_token: Optional[str],
        channel_id: Optional[str] = None,
        api_base: str = "https://api.line.me/v2/bot",
        data_api_base: str = "https://api-data.line.me/v2/bot",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._access_token = channel_access_token
        self._channel_id = channel_id
        self._api_base = api_base.rstrip("/")
        self._data_api_base = data_api_base.rstrip("/")
        self._timeout_seconds = timeout_seconds

    def parse_webhook(self, raw_payload: dict[str, Any]) -> list[PlatformEvent]:
        """Parse a webhook body; events that do not validate are logged and skipped."""
        destination = raw_payload.get("destination")
        channel_id = self._channel_id or destination or "line"
        raw_events = raw_payload.get("events") or []
        if not isinstance(raw_events, list):
            raise ValueError("LINE webhook 'events' must be a list")
        events: list[PlatformEvent] = []
        for raw in raw_events:
            if not isinstance(raw, dict):
                logger.warning("Skipping non-object LINE event: %r", raw)
                continue
            try:
                events.append(self._parse_event(raw, channel_id, destination))
            except ValidationError as e:
                logger.warning("Skipping invalid LINE event: %s", e)
        return events

    def _parse_event(
        self, raw: dict[str, Any], channel_id: str, destination: Optional[str]
    ) -> PlatformEvent:
        event = LineEvent.model_validate(raw)
        timestamp = _event_time(event.timestamp)
        external_room_id, room_type = _room_of(event.source)
        user_id = event.source.user_id if event.source else None
        event_id = event.webhook_event_id or ":".join(
            str(part)
            for part in (
                "line",
                external_room_id,
                event.timestamp,
                event.message.id if event.message else event.type,
            )
        )
        message = None
        if event.type == "message" and event.message and external_room_id:
            room_name = None
            if event.source and event.source.type == "room":
                room_name = f"Multi-User Chat ({external_room_id[:8]})"
            message = InboundMessage(
                channel=ChannelType.LINE,
                channel_id=channel_id,
                external_room_id=external_room_id,
                room_type=room_type,
                room_name=room_name,
                room_kind=event.source.type if event.source else None,
                sender_external_id=user_id,
                external_message_id=event.message.id,
                timestamp=timestamp,
                content=line_message_content(event.message),
            )
        return PlatformEvent(
            event_id=event_id,
            channel=ChannelType.LINE,
            channel_id=channel_id,
            event_type=event.type,
            timestamp=timestamp,
            external_room_id=external_room_id,
            room_type=room_type,
            user_id=user_id,
            message=message,
            # One-event delivery envelope, so a stored event can be re-parsed on replay
            payload={"destination": destination, "events": [raw]},
        )

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._access_token}"}

    async def _get_json(self, url: str) -> Optional[dict[str, Any]]:
        if not self._access_token:
            return None
        try:
            response = await asyncio.to_thread(
                requests.get,
                url,
                headers=self._headers(),
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("LINE API request to %s failed: %s", url, e)
            return None
        if response.status_code != 200:
            logger.warning(
                "LINE API request to %s returned %s", url, response.status_code
            )
            return None
        return response.json()

    async def resolve_room_name(self, message: InboundMessage) -> Optional[str]:
        if message.room_name:
            return message.room_name
        if message.room_type == RoomType.GROUP:
            data = await self._get_json(
                f"{self._api_base}/group/{message.external_room_id}/summary"
            )
            return (data or {}).get("groupName")
        name = await self.resolve_sender_name(message)
        return name

    async def resolve_sender_name(self, message: InboundMessage) -> Optional[str]:
        if message.sender_name:
            return message.sender_name
        user_id = message.sender_external_id
        if not user_id:
            return None
        if message.room_type == RoomType.GROUP:
            kind = "room" if message.room_kind == "room" else "group"
            url = (
                f"{self._api_base}/{kind}/{message.external_room_id}/member/{user_id}"
            )
        else:
            url = f"{self._api_base}/profile/{user_id}"
        data = await self._get_json(url)
        return (data or {}).get("displayName")

    async def fetch_media(self, content: ImageContent) -> tuple[bytes, str]:
        if content.original_url:
            url, headers = content.original_url, {}
        else:
            if not self._access_token:
                raise MediaFetchError("LINE channel access token is not configured")
            url = f"{self._data_api_base}/message/{content.media_ref}/content"
            headers = self._headers()
        try:
            response = await asyncio.to_thread(
                requests.get, url, headers=headers, timeout=self._timeout_seconds
            )
        except requests.RequestException as e:
            raise MediaFetchError(f"LINE content download failed: {e}") from e
        if response.status_code != 200:
            raise MediaFetchError(
                f"LINE content download returned {response.status_code}"
            )
        content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        return response.content, content_type
