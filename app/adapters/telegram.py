"""
Telegram platform adapter.

Uses python-telegram-bot (v20+, async) for parsing webhook updates and
downloading files.
"""

from __future__ import annotations

import mimetypes
from datetime import datetime, timezone
from typing import Any, Optional

from telegram import Bot, Chat, Message, Update
from telegram.error import TelegramError

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

JOINED_STATUSES = ("member", "administrator", "creator")
LEFT_STATUSES = ("left", "kicked")


def _room_type(chat: Chat) -> RoomType:
    if chat.type == Chat.PRIVATE:
        return RoomType.INDIVIDUAL
    return RoomType.GROUP


def _chat_name(chat: Chat) -> Optional[str]:
    if chat.title:
        return chat.title
    parts = [p for p in (chat.first_name, chat.last_name) if p]
    return " ".join(parts) or None


def telegram_message_content(msg: Message) -> MessageContent:
    if msg.text is not None:
        return TextContent(text=msg.text)
    if msg.photo:
        # Sizes are ordered smallest first
        return ImageContent(media_ref=msg.photo[-1].file_id, caption=msg.caption)
    if msg.sticker:
        return OtherContent(
            message_type="sticker", text=msg.sticker.emoji or "sticker message"
        )
    if msg.location:
        return OtherContent(
            message_type="location",
            text="location message",
            latitude=msg.location.latitude,
            longitude=msg.location.longitude,
        )
    if msg.document:
        return OtherContent(
            message_type="file",
            text=msg.caption or msg.document.file_name or "file message",
            file_name=msg.document.file_name,
        )
    if msg.voice or msg.audio:
        return OtherContent(message_type="audio", text=msg.caption or "audio message")
    if msg.video or msg.video_note:
        return OtherContent(message_type="video", text=msg.caption or "video message")
    return OtherContent(message_type="other", text=msg.caption or "other message")


class TelegramAdapter(BasePlatformAdapter):
    """Telegram adapter: parse webhook updates, fetch files via Bot API."""

    channel = ChannelType.TELEGRAM

    def __init__(self, bot_token: str) -> None:
        self._bot_token = bot_token
        self._bot: Optional[Bot] = None

    @property
    def bot_id(self) -> str:
        """Numeric bot id, the prefix of the token."""
        return self._bot_token.split(":", 1)[0]

    def _get_bot(self) -> Bot:
        if self._bot is None:
            self._bot = Bot(token=self._bot_token)
        return self._bot

    def parse_webhook(self, raw_payload: dict[str, Any]) -> list[PlatformEvent]:
        """Parse one Telegram update. Updates without a message or membership change yield nothing."""
        update = Update.de_json(raw_payload, self._get_bot())
        if update is None:
            raise ValueError("Invalid Telegram update: de_json returned None")
        event_id = f"telegram:{self.bot_id}:{update.update_id}"

        membership = update.my_chat_member
        if membership is not None:
            status = membership.new_chat_member.status
            if status in JOINED_STATUSES:
                event_type = "join"
            elif status in LEFT_STATUSES:
                event_type = "leave"
            else:
                event_type = "member_update"
            return [
                self._event(
                    event_id,
                    event_type,
                    membership.chat,
                    membership.date,
                    membership.from_user.id if membership.from_user else None,
                    raw_payload,
                )
            ]

        msg = update.message or update.channel_post
        if msg is None:
            return []
        from_user = msg.from_user
        user_id = from_user.id if from_user else None

        if msg.new_chat_members or msg.left_chat_member:
            if msg.left_chat_member and str(msg.left_chat_member.id) == self.bot_id:
                event_type = "leave"
            elif any(str(m.id) == self.bot_id for m in msg.new_chat_members or ()):
                event_type = "join"
            else:
                event_type = "member_update"
            return [
                self._event(
                    event_id, event_type, msg.chat, msg.date, user_id, raw_payload
                )
            ]

        inbound = InboundMessage(
            channel=ChannelType.TELEGRAM,
            channel_id=self.bot_id,
            external_room_id=str(msg.chat_id),
            room_type=_room_type(msg.chat),
            room_name=_chat_name(msg.chat),
            room_kind=str(msg.chat.type),
            sender_external_id=str(user_id) if user_id is not None else None,
            sender_name=from_user.full_name if from_user else None,
            external_message_id=str(msg.message_id),
            timestamp=self._utc(msg.date),
            content=telegram_message_content(msg),
        )
        return [
            self._event(
                event_id,
                "message",
                msg.chat,
                msg.date,
                user_id,
                raw_payload,
                message=inbound,
            )
        ]

    def _event(
        self,
        event_id: str,
        event_type: str,
        chat: Chat,
        date: Optional[datetime],
        user_id: Optional[int],
        payload: dict[str, Any],
        message: Optional[InboundMessage] = None,
    ) -> PlatformEvent:
        return PlatformEvent(
            event_id=event_id,
            channel=ChannelType.TELEGRAM,
            channel_id=self.bot_id,
            event_type=event_type,
            timestamp=self._utc(date),
            external_room_id=str(chat.id),
            room_type=_room_type(chat),
            user_id=str(user_id) if user_id is not None else None,
            message=message,
            payload=payload,
        )

    @staticmethod
    def _utc(ts: Optional[datetime]) -> datetime:
        if ts is None:
            return datetime.now(timezone.utc)
        return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts

    async def fetch_media(self, content: ImageContent) -> tuple[bytes, str]:
        try:
            file = await self._get_bot().get_file(content.media_ref)
            data = await file.download_as_bytearray()
        except TelegramError as e:
            raise MediaFetchError(f"Telegram file download failed: {e}") from e
        content_type = mimetypes.guess_type(file.file_path or "")[0] or "image/jpeg"
        return bytes(data), content_type
