"""Best-effort download and storage of image attachments."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional

from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.errors import MediaFetchError
from app.infra.logging_config import get_logger
from app.models.media_asset import MediaAsset
from app.schemas.events import ImageContent

if TYPE_CHECKING:
    from app.adapters.base import BasePlatformAdapter

logger = get_logger("media")


class MediaService:
    def __init__(
        self,
        db: Session,
        timeout_seconds: Optional[float] = None,
        max_bytes: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.db = db
        self.timeout_seconds = timeout_seconds or settings.media_fetch_timeout_seconds
        self.max_bytes = max_bytes or settings.media_max_bytes

    async def fetch_and_store(
        self,
        adapter: BasePlatformAdapter,
        content: ImageContent,
        external_message_id: Optional[str] = None,
    ) -> Optional[MediaAsset]:
        """Download the image and store it. Any failure is logged and returns None."""
        try:
            data, content_type = await asyncio.wait_for(
                adapter.fetch_media(content), timeout=self.timeout_seconds
            )
            self._validate(data, content_type)
        except asyncio.TimeoutError:
            logger.warning(
                "Media fetch for %s timed out after %ss",
                content.media_ref,
                self.timeout_seconds,
            )
            return None
        except Exception:
            logger.exception("Media fetch for %s failed", content.media_ref)
            return None

        asset = MediaAsset(
            channel=str(adapter.channel),
            external_message_id=external_message_id,
            content_type=content_type,
            size_bytes=len(data),
            data=bytes(data),
        )
        try:
            self.db.add(asset)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Storing media for %s failed", content.media_ref)
            return None
        self.db.refresh(asset)
        return asset

    def _validate(self, data: bytes, content_type: str) -> None:
        if not data:
            raise MediaFetchError("Empty media content")
        if not (content_type or "").lower().startswith("image/"):
            raise MediaFetchError(f"Unexpected content type {content_type!r}")
        if len(data) > self.max_bytes:
            raise MediaFetchError(
                f"Media is {len(data)} bytes, limit is {self.max_bytes}"
            )
