"""Fixtures for owners, rooms, sessions and normalized inbound messages."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.adapters.base import BasePlatformAdapter
from app.constants.session import ChannelType, RoomType, SessionStatus
from app.models.chat_session import ChatSession
from app.models.owner import Owner
from app.models.room import Room
from app.schemas.events import InboundMessage, TextContent
from app.services.chat_session_service import generate_session_code


@pytest.fixture(scope="function")
def setup_owner(db, faker):
    owner = Owner(
        channel=ChannelType.LINE,
        channel_id=faker.bothify("U################"),
        name=faker.company(),
    )
    db.add(owner)
    db.commit()
    db.refresh(owner)
    return owner


@pytest.fixture(scope="function")
def setup_room(db, faker, setup_owner):
    room = Room(
        owner_id=setup_owner.id,
        external_room_id=faker.bothify("U################"),
        name=faker.name(),
        room_type=RoomType.INDIVIDUAL,
        last_activity_at=datetime.now(timezone.utc),
    )
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@pytest.fixture(scope="function")
def setup_group_room(db, faker, setup_owner):
    room = Room(
        owner_id=setup_owner.id,
        external_room_id=faker.bothify("C################"),
        name=faker.catch_phrase(),
        room_type=RoomType.GROUP,
        last_activity_at=datetime.now(timezone.utc),
    )
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


def log_entry(text: str, message_id: str, when: datetime | None = None) -> dict:
    when = when or datetime.now(timezone.utc)
    return {
        "timestamp": when.isoformat(),
        "direction": "user",
        "message_type": "text",
        "message": text,
        "external_message_id": message_id,
        "media_asset_id": None,
    }


def add_session(
    db,
    room: Room,
    status: str = SessionStatus.ACTIVE,
    entries: int = 0,
    start_time: datetime | None = None,
) -> ChatSession:
    start_time = start_time or datetime.now(timezone.utc)
    session = ChatSession(
        session_code=generate_session_code(start_time),
        room_id=room.id,
        owner_id=room.owner_id,
        room_name=room.name,
        room_type=room.room_type,
        external_room_id=room.external_room_id,
        status=status,
        start_time=start_time,
        message_log=[log_entry(f"message {i}", f"m{i}") for i in range(entries)],
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


@pytest.fixture(scope="function")
def setup_session(db, setup_room):
    return add_session(db, setup_room)


def make_inbound(
    text: str = "Hello",
    channel_id: str = "channel-1",
    external_room_id: str = "U1234567890abcdef",
    room_type: RoomType = RoomType.INDIVIDUAL,
    message_id: str = "1001",
    content=None,
    **kwargs,
) -> InboundMessage:
    return InboundMessage(
        channel=ChannelType.LINE,
        channel_id=channel_id,
        external_room_id=external_room_id,
        room_type=room_type,
        sender_external_id=kwargs.pop("sender_external_id", "U-sender"),
        external_message_id=message_id,
        timestamp=kwargs.pop("timestamp", datetime.now(timezone.utc)),
        content=content or TextContent(text=text),
        **kwargs,
    )


@pytest.fixture(scope="function")
def fake_adapter():
    """Adapter double: names come from the message, media downloads are mocked."""
    adapter = MagicMock(spec=BasePlatformAdapter)
    adapter.channel = ChannelType.LINE

    async def room_name(message):
        return message.room_name

    async def sender_name(message):
        return message.sender_name

    adapter.resolve_room_name = AsyncMock(side_effect=room_name)
    adapter.resolve_sender_name = AsyncMock(side_effect=sender_name)
    adapter.fetch_media = AsyncMock(return_value=(b"\x89PNG-bytes", "image/png"))
    return adapter
