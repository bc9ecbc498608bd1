"""Find-or-create of owners (channel tenants) and rooms (conversation endpoints)."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.constants.session import ChannelType, RoomType
from app.core.credentials import (
    channel_credentials,
    credentials_enabled,
    encrypt_credential_fields,
)
from app.infra.logging_config import get_logger
from app.models.owner import Owner
from app.models.room import Room
from app.utils.time import utcnow

logger = get_logger("identity")


def default_room_name(external_room_id: str, room_type: str) -> str:
    short_id = external_room_id[:8]
    if room_type == RoomType.GROUP:
        return f"Group Chat ({short_id})"
    return f"Direct Message ({short_id})"


def default_owner_name(channel: str, channel_id: str) -> str:
    return f"{str(channel).upper()} Channel ({channel_id[:8]})"


class IdentityService:
    """
    Idempotent resolution of Owner and Room rows.

    Creation relies on the unique constraints: a concurrent insert that loses
    raises ``IntegrityError``, which is rolled back before the winner is re-read.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_owner(self, channel: str, channel_id: str) -> Optional[Owner]:
        return (
            self.db.query(Owner)
            .filter(Owner.channel == channel, Owner.channel_id == channel_id)
            .first()
        )

    def get_or_create_owner(
        self, channel: ChannelType, channel_id: str, name: Optional[str] = None
    ) -> Owner:
        owner = self.get_owner(channel, channel_id)
        if owner is not None:
            return owner
        owner = Owner(
            channel=str(channel),
            channel_id=channel_id,
            name=name or default_owner_name(channel, channel_id),
            encrypted_credentials=self._encrypted_channel_credentials(channel),
        )
        self.db.add(owner)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_owner(channel, channel_id)
            if existing is None:
                raise
            return existing
        self.db.refresh(owner)
        logger.info("Created owner %s for %s channel %s", owner.id, channel, channel_id)
        return owner

    def find_room(self, owner: Owner, external_room_id: str) -> Optional[Room]:
        return (
            self.db.query(Room)
            .filter(
                Room.owner_id == owner.id, Room.external_room_id == external_room_id
            )
            .first()
        )

    def get_room(self, room_id: UUID) -> Optional[Room]:
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_or_create_room(
        self,
        owner: Owner,
        external_room_id: str,
        name: Optional[str] = None,
        room_type: RoomType = RoomType.INDIVIDUAL,
    ) -> Room:
        """Return the room, creating it when unseen; always refreshes last_activity_at."""
        now = utcnow()
        room = self.find_room(owner, external_room_id)
        if room is None:
            room = Room(
                owner_id=owner.id,
                external_room_id=external_room_id,
                name=name or default_room_name(external_room_id, room_type),
                room_type=str(room_type),
                last_activity_at=now,
            )
            self.db.add(room)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                room = self.find_room(owner, external_room_id)
                if room is None:
                    raise
            else:
                self.db.refresh(room)
                logger.info(
                    "Created room %s (%s) for owner %s", room.id, room.name, owner.id
                )
                return room
        room.last_activity_at = now
        self.db.commit()
        self.db.refresh(room)
        return room

    def set_room_active(
        self, owner: Owner, external_room_id: str, is_active: bool
    ) -> Optional[Room]:
        room = self.find_room(owner, external_room_id)
        if room is None:
            return None
        room.is_active = is_active
        room.last_activity_at = utcnow()
        self.db.commit()
        self.db.refresh(room)
        return room

    def increment_counters(
        self,
        room_id: UUID,
        owner_id: UUID,
        messages: int = 0,
        sessions: int = 0,
        summaries: int = 0,
        tokens: int = 0,
    ) -> None:
        """Bump room and owner statistics in SQL so concurrent writers never lose counts."""
        room_values = {}
        if messages:
            room_values[Room.total_messages] = Room.total_messages + messages
        if sessions:
            room_values[Room.total_sessions] = Room.total_sessions + sessions
        if summaries:
            room_values[Room.total_summaries] = Room.total_summaries + summaries
        owner_values = {}
        if messages:
            owner_values[Owner.total_messages] = Owner.total_messages + messages
        if sessions:
            owner_values[Owner.total_sessions] = Owner.total_sessions + sessions
        if summaries:
            owner_values[Owner.total_summaries] = Owner.total_summaries + summaries
        if tokens:
            owner_values[Owner.ai_tokens_used] = Owner.ai_tokens_used + tokens
        if room_values:
            self.db.query(Room).filter(Room.id == room_id).update(
                room_values, synchronize_session=False
            )
        if owner_values:
            self.db.query(Owner).filter(Owner.id == owner_id).update(
                owner_values, synchronize_session=False
            )
        self.db.commit()

    @staticmethod
    def _encrypted_channel_credentials(channel: str) -> Optional[bytes]:
        if not credentials_enabled():
            return None
        fields = channel_credentials(str(channel))
        if not fields:
            return None
        return encrypt_credential_fields(fields)
