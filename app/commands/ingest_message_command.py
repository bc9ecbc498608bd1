"""
Command to ingest one normalized inbound message.

Resolves owner and room, fetches image content best-effort, appends a bounded
entry to the room's active session, persists the full Message record, bumps
counters and evaluates the session's close triggers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.adapters.base import BasePlatformAdapter
from app.config import Settings, get_settings
from app.constants.session import MediaStatus, MessageDirection, SenderRole
from app.infra.logging_config import get_logger
from app.models.media_asset import MediaAsset
from app.models.message import Message
from app.models.room import Room
from app.schemas.events import ImageContent, InboundMessage, OtherContent, TextContent
from app.services.identity_service import IdentityService
from app.services.media_service import MediaService
from app.services.message_service import MessageService
from app.services.session_manager import SessionManager
from app.workers.llm import LLMRunner

MEDIA_FAILED_MARKER = "Image uploaded (download failed)"


def media_saved_marker(asset: MediaAsset) -> str:
    return f"Image uploaded (saved: {str(asset.id)[:8]}...)"


@dataclass
class NormalizedContent:
    message_type: str
    text: str
    media_asset_id: Optional[Any] = None
    media_status: Optional[str] = None
    file_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    size: int = 0


def sender_role_for(message: InboundMessage) -> SenderRole:
    if message.direction == MessageDirection.BOT:
        return SenderRole.BOT
    if message.direction == MessageDirection.SYSTEM:
        return SenderRole.SYSTEM
    if message.is_group:
        return SenderRole.GROUP_MEMBER
    return SenderRole.USER


class IngestMessageCommand:
    def __init__(
        self,
        db: Session,
        adapter: BasePlatformAdapter,
        runner: Optional[LLMRunner] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.db = db
        self.adapter = adapter
        self.settings = settings or get_settings()
        self.identity = IdentityService(db)
        self.messages = MessageService(db)
        self.media = MediaService(db)
        self.session_manager = SessionManager(db, runner=runner, settings=self.settings)
        self.logger = get_logger("ingest")

    async def execute(self, message: InboundMessage) -> Message:
        owner = self.identity.get_or_create_owner(message.channel, message.channel_id)
        room = await self._resolve_room(owner, message)
        sender_name = await self.adapter.resolve_sender_name(message)
        content = await self._normalize_content(message)

        entry = {
            "timestamp": message.timestamp.isoformat(),
            "direction": str(message.direction),
            "message_type": content.message_type,
            "message": content.text,
            "external_message_id": message.external_message_id,
            "media_asset_id": (
                str(content.media_asset_id) if content.media_asset_id else None
            ),
        }
        session = await self.session_manager.append_entry(room, entry)

        record = self.messages.create_message(
            session_id=session.id,
            room_id=room.id,
            owner_id=owner.id,
            timestamp=message.timestamp,
            direction=str(message.direction),
            message_type=content.message_type,
            content=content.text,
            external_message_id=message.external_message_id,
            sender_external_id=message.sender_external_id,
            sender_name=sender_name,
            sender_role=str(sender_role_for(message)),
            room_type=str(message.room_type),
            group_external_id=message.external_room_id if message.is_group else None,
            group_name=room.name if message.is_group else None,
            media_asset_id=content.media_asset_id,
            media_status=content.media_status,
            file_name=content.file_name,
            latitude=content.latitude,
            longitude=content.longitude,
            message_size=content.size,
        )
        self.identity.increment_counters(room.id, owner.id, messages=1)
        self.logger.info(
            "Stored %s message %s in session %s",
            content.message_type,
            record.id,
            session.session_code,
        )

        await self.session_manager.evaluate_triggers(session)
        return record

    async def _resolve_room(self, owner, message: InboundMessage) -> Room:
        """Name lookups only happen for rooms seen for the first time."""
        room = self.identity.find_room(owner, message.external_room_id)
        name = None
        if room is None:
            name = await self.adapter.resolve_room_name(message)
        return self.identity.get_or_create_room(
            owner, message.external_room_id, name=name, room_type=message.room_type
        )

    async def _normalize_content(self, message: InboundMessage) -> NormalizedContent:
        content = message.content
        if isinstance(content, TextContent):
            return NormalizedContent(
                message_type="text",
                text=content.text,
                size=len(content.text.encode("utf-8")),
            )
        if isinstance(content, ImageContent):
            asset = await self.media.fetch_and_store(
                self.adapter, content, message.external_message_id
            )
            if asset is None:
                return NormalizedContent(
                    message_type="image",
                    text=MEDIA_FAILED_MARKER,
                    media_status=MediaStatus.FAILED,
                )
            text = media_saved_marker(asset)
            if content.caption:
                text = f"{text} {content.caption}"
            return NormalizedContent(
                message_type="image",
                text=text,
                media_asset_id=asset.id,
                media_status=MediaStatus.STORED,
                size=asset.size_bytes,
            )
        if isinstance(content, OtherContent):
            return NormalizedContent(
                message_type=content.message_type,
                text=content.text,
                file_name=content.file_name,
                latitude=content.latitude,
                longitude=content.longitude,
                size=len(content.text.encode("utf-8")),
            )
        raise TypeError(f"Unsupported message content: {type(content).__name__}")
