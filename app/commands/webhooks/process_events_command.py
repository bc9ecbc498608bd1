"""
Command to process one webhook delivery.

Every event is first stored in the raw event store. Message events are then
grouped by room: rooms are processed concurrently, events of one room in
delivery order, and each event in its own DB session so one failure never
affects the others.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.adapters.base import BasePlatformAdapter
from app.commands.ingest_message_command import IngestMessageCommand
from app.config import Settings, get_settings
from app.constants.session import RoomType
from app.db.session import SessionFactory
from app.infra.logging_config import get_logger
from app.schemas.events import PlatformEvent
from app.services.identity_service import IdentityService
from app.services.raw_event_service import RawEventService
from app.workers.llm import LLMRunner

MEMBERSHIP_EVENTS = ("join", "leave")
LOGGED_EVENTS = ("follow", "unfollow", "member_update", "memberJoined", "memberLeft")


@dataclass
class ProcessResult:
    received: int = 0
    duplicates: int = 0
    processed: int = 0
    failed: int = 0


class ProcessWebhookEventsCommand:
    def __init__(
        self,
        adapter: BasePlatformAdapter,
        session_factory: SessionFactory,
        runner: Optional[LLMRunner] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.adapter = adapter
        self.session_factory = session_factory
        self.runner = runner
        self.settings = settings or get_settings()
        self.logger = get_logger("webhooks")

    async def execute(self, events: list[PlatformEvent]) -> ProcessResult:
        result = ProcessResult(received=len(events))
        fresh = self._store_raw_events(events)
        result.duplicates = len(events) - len(fresh)

        by_room: dict[str, list[PlatformEvent]] = {}
        for event in fresh:
            by_room.setdefault(event.room_key or event.event_id, []).append(event)

        outcomes = await asyncio.gather(
            *(self._process_room(room_events) for room_events in by_room.values())
        )
        for processed, failed in outcomes:
            result.processed += processed
            result.failed += failed
        self.logger.info(
            "Webhook delivery: %d events, %d duplicates, %d processed, %d failed",
            result.received,
            result.duplicates,
            result.processed,
            result.failed,
        )
        return result

    async def replay(self, event_id: str) -> bool:
        """Re-run processing for a stored raw event. Returns False if it is unknown."""
        with self.session_factory() as db:
            raw = RawEventService(db).get_event(event_id)
            if raw is None:
                return False
            channel, payload = raw.channel, raw.payload
        if channel != self.adapter.channel:
            raise ValueError(
                f"Raw event {event_id} belongs to {channel}, not {self.adapter.channel}"
            )
        events = [e for e in self.adapter.parse_webhook(payload) if e.event_id == event_id]
        for event in events:
            await self._process_event(event)
        return bool(events)

    def _store_raw_events(self, events: list[PlatformEvent]) -> list[PlatformEvent]:
        fresh = []
        with self.session_factory() as db:
            service = RawEventService(db)
            for event in events:
                try:
                    stored = service.store(event)
                except Exception:
                    db.rollback()
                    self.logger.exception(
                        "Could not store raw event %s; processing it anyway",
                        event.event_id,
                    )
                    stored = True
                if stored:
                    fresh.append(event)
                else:
                    self.logger.info(
                        "Skipping redelivered event %s", event.event_id
                    )
        return fresh

    async def _process_room(self, events: list[PlatformEvent]) -> tuple[int, int]:
        processed = failed = 0
        for event in events:
            if await self._process_event(event):
                processed += 1
            else:
                failed += 1
        return processed, failed

    async def _process_event(self, event: PlatformEvent) -> bool:
        try:
            with self.session_factory() as db:
                await self.handle_event(db, event)
        except Exception:
            self.logger.exception(
                "Failed to process %s event %s; kept in raw event store for replay",
                event.event_type,
                event.event_id,
            )
            return False
        return True

    async def handle_event(self, db: Session, event: PlatformEvent) -> None:
        if event.event_type == "message":
            if event.message is None:
                self.logger.warning("Message event %s has no message", event.event_id)
                return
            command = IngestMessageCommand(
                db, self.adapter, runner=self.runner, settings=self.settings
            )
            await command.execute(event.message)
        elif event.event_type in MEMBERSHIP_EVENTS:
            self._handle_membership(db, event)
        elif event.event_type in LOGGED_EVENTS:
            self.logger.info(
                "%s event from %s in %s",
                event.event_type,
                event.user_id,
                event.external_room_id,
            )
        else:
            self.logger.debug("Ignoring %s event %s", event.event_type, event.event_id)

    def _handle_membership(self, db: Session, event: PlatformEvent) -> None:
        if not event.external_room_id:
            return
        identity = IdentityService(db)
        owner = identity.get_or_create_owner(event.channel, event.channel_id)
        if event.event_type == "join":
            room = identity.get_or_create_room(
                owner,
                event.external_room_id,
                room_type=event.room_type or RoomType.INDIVIDUAL,
            )
            if not room.is_active:
                identity.set_room_active(owner, event.external_room_id, True)
            self.logger.info("Joined room %s", room.id)
        else:
            room = identity.set_room_active(owner, event.external_room_id, False)
            if room is not None:
                self.logger.info("Left room %s", room.id)
