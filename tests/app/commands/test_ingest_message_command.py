"""Tests for IngestMessageCommand."""

from datetime import datetime, timedelta, timezone

import pytest

from app.commands.ingest_message_command import (
    MEDIA_FAILED_MARKER,
    IngestMessageCommand,
)
from app.config import Settings
from app.constants.session import (
    CloseReason,
    MediaStatus,
    RoomType,
    SessionStatus,
    SummaryStatus,
)
from app.core.errors import MediaFetchError
from app.models.chat_session import ChatSession
from app.models.media_asset import MediaAsset
from app.models.message import Message
from app.models.owner import Owner
from app.models.room import Room
from app.models.summary import Summary
from app.schemas.events import ImageContent, OtherContent
from tests.fixtures.identity_fixtures import make_inbound


@pytest.fixture
def settings():
    return Settings(session_max_messages=50, session_timeout_hours=24)


@pytest.fixture
def command(db, fake_adapter, fake_runner, settings):
    return IngestMessageCommand(db, fake_adapter, runner=fake_runner, settings=settings)


@pytest.mark.asyncio
async def test_first_message_creates_owner_room_and_session(db, command):
    record = await command.execute(make_inbound("Hello"))

    owner = db.query(Owner).one()
    room = db.query(Room).one()
    session = db.query(ChatSession).one()
    assert owner.channel == "line"
    assert owner.channel_id == "channel-1"
    assert room.external_room_id == "U1234567890abcdef"
    assert room.room_type == RoomType.INDIVIDUAL
    assert room.name == "Direct Message (U1234567)"
    assert session.status == SessionStatus.ACTIVE
    assert session.message_count == 1
    assert session.message_log[0]["message"] == "Hello"
    assert session.message_log[0]["external_message_id"] == "1001"
    assert record.session_id == session.id
    assert record.direction == "user"
    assert record.message_type == "text"
    assert record.content == "Hello"
    assert record.sender_role == "user"
    assert record.message_size == 5
    db.refresh(room)
    db.refresh(owner)
    assert room.total_messages == 1
    assert room.total_sessions == 1
    assert owner.total_messages == 1


@pytest.mark.asyncio
async def test_message_limit_closes_and_summarizes(db, command, fake_runner):
    for i in range(50):
        await command.execute(make_inbound(f"message {i}", message_id=str(i)))

    session = db.query(ChatSession).one()
    db.refresh(session)
    assert session.status == SessionStatus.CLOSED
    assert session.close_reason == CloseReason.MESSAGE_LIMIT
    assert session.end_time is not None
    assert session.message_count == 50
    summary = db.query(Summary).one()
    assert session.summary_id == summary.id
    assert summary.status == SummaryStatus.COMPLETED
    assert summary.parse_mode == "structured"
    assert summary.tokens_used == 1000
    assert fake_runner.complete.await_count == 1
    prompt = fake_runner.complete.await_args.args[0]
    assert "message 0" in prompt and "message 49" in prompt

    await command.execute(make_inbound("after close", message_id="50"))
    active = db.query(ChatSession).filter(ChatSession.status == SessionStatus.ACTIVE).one()
    assert active.id != session.id
    assert active.message_count == 1


@pytest.mark.asyncio
async def test_message_after_timeout_goes_to_fresh_session(db, command):
    await command.execute(make_inbound("first"))
    expired = db.query(ChatSession).one()
    expired.start_time = datetime.now(timezone.utc) - timedelta(hours=25)
    db.commit()

    record = await command.execute(make_inbound("second", message_id="1002"))

    db.refresh(expired)
    assert expired.status == SessionStatus.CLOSED
    assert expired.close_reason == CloseReason.TIMEOUT
    assert expired.message_count == 1
    assert expired.message_log[0]["message"] == "first"
    assert db.query(Summary).filter(Summary.session_id == expired.id).one()

    current = (
        db.query(ChatSession).filter(ChatSession.status == SessionStatus.ACTIVE).one()
    )
    assert current.id != expired.id
    assert current.message_count == 1
    assert current.message_log[0]["message"] == "second"
    assert record.session_id == current.id
    assert db.query(Message).count() == 2


@pytest.mark.asyncio
async def test_image_is_stored(db, command):
    message = make_inbound(
        content=ImageContent(media_ref="1001", caption="receipt"), message_id="1001"
    )
    record = await command.execute(message)

    asset = db.query(MediaAsset).one()
    assert record.message_type == "image"
    assert record.media_status == MediaStatus.STORED
    assert record.media_asset_id == asset.id
    assert record.content.startswith(f"Image uploaded (saved: {str(asset.id)[:8]}")
    assert record.content.endswith("receipt")
    session = db.query(ChatSession).one()
    assert session.message_log[0]["media_asset_id"] == str(asset.id)


@pytest.mark.asyncio
async def test_image_download_failure_is_recorded(db, command, fake_adapter):
    fake_adapter.fetch_media.side_effect = MediaFetchError("HTTP 404")

    record = await command.execute(
        make_inbound(content=ImageContent(media_ref="1001"))
    )

    assert record.message_type == "image"
    assert record.content == MEDIA_FAILED_MARKER
    assert record.media_status == MediaStatus.FAILED
    assert record.media_asset_id is None
    assert db.query(MediaAsset).count() == 0
    session = db.query(ChatSession).one()
    assert session.message_log[0]["message"] == MEDIA_FAILED_MARKER


@pytest.mark.asyncio
async def test_other_content(command):
    record = await command.execute(
        make_inbound(
            content=OtherContent(
                message_type="location",
                text="Tokyo Tower",
                latitude=35.6586,
                longitude=139.7454,
            )
        )
    )
    assert record.message_type == "location"
    assert record.content == "Tokyo Tower"
    assert record.latitude == pytest.approx(35.6586)


@pytest.mark.asyncio
async def test_group_message(db, command, fake_adapter):
    message = make_inbound(
        "hi all",
        external_room_id="Cgroup1234567",
        room_type=RoomType.GROUP,
        room_name="Project Team",
        sender_name="Alice",
    )
    record = await command.execute(message)

    room = db.query(Room).one()
    assert room.name == "Project Team"
    assert room.room_type == RoomType.GROUP
    assert record.sender_role == "group_member"
    assert record.sender_name == "Alice"
    assert record.group_external_id == "Cgroup1234567"
    assert record.group_name == "Project Team"


@pytest.mark.asyncio
async def test_room_name_is_resolved_only_once(command, fake_adapter):
    await command.execute(make_inbound("one", message_id="1"))
    await command.execute(make_inbound("two", message_id="2"))
    assert fake_adapter.resolve_room_name.await_count == 1
    assert fake_adapter.resolve_sender_name.await_count == 2
