"""Tests for IdentityService."""

from cryptography.fernet import Fernet

from app.constants.session import ChannelType, RoomType
from app.core.credentials import decrypt_credential_fields
from app.models.owner import Owner
from app.models.room import Room
from app.services.identity_service import IdentityService, default_room_name


def test_get_or_create_owner_creates_once(db):
    service = IdentityService(db)
    first = service.get_or_create_owner(ChannelType.LINE, "Uchannel0001")
    second = service.get_or_create_owner(ChannelType.LINE, "Uchannel0001")
    assert first.id == second.id
    assert first.channel == "line"
    assert first.name == "LINE Channel (Uchannel)"
    assert db.query(Owner).count() == 1


def test_get_or_create_owner_is_per_channel(db):
    service = IdentityService(db)
    line = service.get_or_create_owner(ChannelType.LINE, "shared-id")
    telegram = service.get_or_create_owner(ChannelType.TELEGRAM, "shared-id")
    assert line.id != telegram.id


def test_get_or_create_owner_encrypts_channel_credentials(db, monkeypatch):
    monkeypatch.setenv("CREDENTIAL_MASTER_KEY", Fernet.generate_key().decode())
    monkeypatch.setenv("LINE_CHANNEL_ACCESS_TOKEN", "line-token")
    monkeypatch.setenv("LINE_CHANNEL_SECRET", "line-secret")
    owner = IdentityService(db).get_or_create_owner(ChannelType.LINE, "Uenc")
    assert owner.encrypted_credentials is not None
    assert b"line-token" not in owner.encrypted_credentials
    assert decrypt_credential_fields(owner.encrypted_credentials) == {
        "channel_secret": "line-secret",
        "channel_access_token": "line-token",
    }


def test_get_or_create_owner_without_master_key(db, monkeypatch):
    monkeypatch.delenv("CREDENTIAL_MASTER_KEY", raising=False)
    monkeypatch.delenv("FERNET_KEY", raising=False)
    owner = IdentityService(db).get_or_create_owner(ChannelType.LINE, "Uplain")
    assert owner.encrypted_credentials is None


def test_same_owner_and_external_id_yields_same_room(db, setup_owner):
    service = IdentityService(db)
    first = service.get_or_create_room(setup_owner, "C0000000001", "Team", RoomType.GROUP)
    second = service.get_or_create_room(setup_owner, "C0000000001", "Renamed")
    assert first.id == second.id
    assert second.name == "Team"
    assert db.query(Room).count() == 1


def test_get_or_create_room_refreshes_last_activity(db, setup_owner):
    service = IdentityService(db)
    room = service.get_or_create_room(setup_owner, "U0000000001")
    first_activity = room.last_activity_at
    room = service.get_or_create_room(setup_owner, "U0000000001")
    assert room.last_activity_at >= first_activity


def test_get_or_create_room_default_names(db, setup_owner):
    service = IdentityService(db)
    group = service.get_or_create_room(
        setup_owner, "Cabcdef123456", room_type=RoomType.GROUP
    )
    direct = service.get_or_create_room(setup_owner, "Uabcdef123456")
    assert group.name == "Group Chat (Cabcdef1)"
    assert direct.name == "Direct Message (Uabcdef1)"
    assert default_room_name("R12345678xyz", RoomType.INDIVIDUAL) == (
        "Direct Message (R1234567)"
    )


def test_find_room(db, setup_owner, setup_room):
    service = IdentityService(db)
    assert service.find_room(setup_owner, setup_room.external_room_id).id == setup_room.id
    assert service.find_room(setup_owner, "unknown") is None


def test_set_room_active(db, setup_owner, setup_room):
    service = IdentityService(db)
    room = service.set_room_active(setup_owner, setup_room.external_room_id, False)
    assert room.is_active is False
    room = service.set_room_active(setup_owner, setup_room.external_room_id, True)
    assert room.is_active is True
    assert service.set_room_active(setup_owner, "unknown", False) is None


def test_increment_counters(db, setup_owner, setup_room):
    service = IdentityService(db)
    service.increment_counters(setup_room.id, setup_owner.id, messages=2, sessions=1)
    service.increment_counters(setup_room.id, setup_owner.id, summaries=1, tokens=500)
    db.refresh(setup_room)
    db.refresh(setup_owner)
    assert setup_room.total_messages == 2
    assert setup_room.total_sessions == 1
    assert setup_room.total_summaries == 1
    assert setup_owner.total_messages == 2
    assert setup_owner.total_sessions == 1
    assert setup_owner.total_summaries == 1
    assert setup_owner.ai_tokens_used == 500
