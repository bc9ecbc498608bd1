"""Tests for ChatSessionService."""

import re
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from app.constants.session import CloseReason, SessionStatus
from app.core.errors import (
    SessionConflictError,
    SessionLogFullError,
    SessionNotActiveError,
)
from app.services.chat_session_service import (
    ChatSessionService,
    generate_session_code,
)
from tests.fixtures.identity_fixtures import add_session, log_entry


def test_generate_session_code():
    code = generate_session_code(datetime(2026, 3, 4, tzinfo=timezone.utc))
    assert re.fullmatch(r"CHAT-20260304-[0-9a-f]{8}", code)


def test_create_session(db, setup_room):
    session = ChatSessionService(db).create_session(setup_room)
    assert session.status == SessionStatus.ACTIVE
    assert session.room_name == setup_room.name
    assert session.external_room_id == setup_room.external_room_id
    assert session.message_log == []
    assert session.version == 1


def test_second_active_session_for_room_is_rejected(db, setup_room):
    service = ChatSessionService(db)
    service.create_session(setup_room)
    with pytest.raises(IntegrityError):
        service.create_session(setup_room)
    db.rollback()
    assert len(service.get_active_sessions(setup_room.id)) == 1


def test_closed_sessions_do_not_block_a_new_active_one(db, setup_room):
    add_session(db, setup_room, status=SessionStatus.CLOSED)
    add_session(db, setup_room, status=SessionStatus.CLOSED)
    session = ChatSessionService(db).create_session(setup_room)
    assert session.status == SessionStatus.ACTIVE


def test_append_log_entry(db, setup_session):
    service = ChatSessionService(db)
    session = service.append_log_entry(setup_session.id, log_entry("hi", "m1"))
    assert session.message_count == 1
    assert session.message_log[0]["message"] == "hi"
    assert session.version == 2


def test_append_log_entry_refuses_full_log(db, setup_room):
    session = add_session(db, setup_room, entries=100)
    with pytest.raises(SessionLogFullError):
        ChatSessionService(db).append_log_entry(session.id, log_entry("x", "m101"))
    db.refresh(session)
    assert session.message_count == 100


def test_append_log_entry_refuses_inactive_session(db, setup_room):
    session = add_session(db, setup_room, status=SessionStatus.CLOSED)
    with pytest.raises(SessionNotActiveError):
        ChatSessionService(db).append_log_entry(session.id, log_entry("x", "m1"))


def test_append_log_entry_gives_up_after_repeated_conflicts(
    db, setup_session, monkeypatch
):
    def conflicting_commit():
        raise StaleDataError("concurrent update")

    monkeypatch.setattr(db, "commit", conflicting_commit)
    with pytest.raises(SessionConflictError):
        ChatSessionService(db).append_log_entry(setup_session.id, log_entry("x", "m1"))


def test_begin_summarizing_only_once(db, setup_session):
    service = ChatSessionService(db)
    assert service.begin_summarizing(setup_session.id, CloseReason.MESSAGE_LIMIT)
    assert not service.begin_summarizing(setup_session.id, CloseReason.MESSAGE_LIMIT)
    session = service.get_session(setup_session.id)
    db.refresh(session)
    assert session.status == SessionStatus.SUMMARIZING
    assert session.close_reason == "message_limit"
    assert session.end_time is not None


def test_mark_closed_is_terminal(db, setup_session):
    service = ChatSessionService(db)
    assert service.mark_closed(setup_session.id)
    assert not service.mark_closed(setup_session.id)
    session = service.get_session(setup_session.id)
    db.refresh(session)
    assert session.status == SessionStatus.CLOSED
    assert session.end_time is not None


def test_rooms_with_duplicate_active(db, setup_room, setup_group_room):
    db.execute(text("DROP INDEX uq_chat_sessions_room_active"))
    db.commit()
    add_session(db, setup_room)
    add_session(db, setup_room)
    add_session(db, setup_group_room)
    assert ChatSessionService(db).rooms_with_duplicate_active() == [setup_room.id]


def test_stale_summarizing(db, setup_room):
    session = add_session(db, setup_room, status=SessionStatus.SUMMARIZING)
    service = ChatSessionService(db)
    future = datetime.now(timezone.utc) + timedelta(minutes=1)
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    assert [s.id for s in service.stale_summarizing(future)] == [session.id]
    assert service.stale_summarizing(past) == []


def test_expired_active(db, setup_room, setup_group_room):
    now = datetime.now(timezone.utc)
    old = add_session(db, setup_room, start_time=now - timedelta(hours=30))
    add_session(db, setup_group_room, start_time=now)
    add_session(
        db, setup_group_room, status=SessionStatus.CLOSED, start_time=now - timedelta(days=3)
    )

    expired = ChatSessionService(db).expired_active(now - timedelta(hours=24))

    assert [s.id for s in expired] == [old.id]


def test_attach_summary_only_on_closed_session(db, setup_room, setup_group_room):
    service = ChatSessionService(db)
    closed = add_session(db, setup_room, status=SessionStatus.CLOSED)
    active = add_session(db, setup_group_room)
    summary_id = uuid.uuid4()

    assert service.attach_summary(closed.id, summary_id) is True
    assert service.attach_summary(active.id, summary_id) is False

    db.refresh(closed)
    db.refresh(active)
    assert closed.summary_id == summary_id
    assert active.summary_id is None
