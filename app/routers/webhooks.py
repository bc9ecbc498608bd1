"""
Webhook routes for inbound chat platform deliveries.

Platforms POST raw deliveries here. Every event is stored for audit, then
processed; processing failures never turn into a non-200 acknowledgment.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from app.adapters.base import BasePlatformAdapter
from app.commands.webhooks import ProcessWebhookEventsCommand
from app.db import get_session_factory
from app.db.session import SessionFactory
from app.routers.utils.dependencies import (
    get_line_adapter,
    get_summary_runner,
    get_telegram_adapter,
)
from app.workers.llm import LLMRunner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def _json_object(request: Request, platform: str) -> dict[str, Any]:
    try:
        body = await request.json()
    except Exception as e:
        logger.warning("%s webhook invalid JSON: %s", platform, e)
        raise HTTPException(status_code=400, detail="Invalid JSON body") from e
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")
    return body


async def _process(
    adapter: BasePlatformAdapter,
    body: dict[str, Any],
    session_factory: SessionFactory,
    runner: LLMRunner,
) -> dict[str, str]:
    try:
        events = adapter.parse_webhook(body)
    except (ValueError, KeyError, TypeError) as e:
        logger.warning("%s webhook parse error: %s", adapter.channel, e)
        return {"status": "ok"}
    command = ProcessWebhookEventsCommand(adapter, session_factory, runner=runner)
    await command.execute(events)
    return {"status": "ok"}


@router.post("/line")
async def line_webhook(
    request: Request,
    session_factory: SessionFactory = Depends(get_session_factory),
    runner: LLMRunner = Depends(get_summary_runner),
) -> dict[str, str]:
    """Receive a LINE delivery (``{"destination", "events"}``) and process its events."""
    adapter = get_line_adapter()
    if adapter is None:
        raise HTTPException(
            status_code=503, detail="LINE integration is not configured or disabled"
        )
    body = await _json_object(request, "LINE")
    return await _process(adapter, body, session_factory, runner)


@router.post("/telegram")
async def telegram_webhook(
    request: Request,
    session_factory: SessionFactory = Depends(get_session_factory),
    runner: LLMRunner = Depends(get_summary_runner),
) -> dict[str, str]:
    """Receive one Telegram update and process it."""
    adapter = get_telegram_adapter()
    if adapter is None:
        raise HTTPException(
            status_code=503,
            detail="Telegram integration is not configured or disabled",
        )
    body = await _json_object(request, "Telegram")
    return await _process(adapter, body, session_factory, runner)


@router.post("/{channel}/replay/{event_id}")
async def replay_event(
    channel: str,
    event_id: str,
    session_factory: SessionFactory = Depends(get_session_factory),
    runner: LLMRunner = Depends(get_summary_runner),
) -> dict[str, str]:
    """Re-run processing of a stored raw event."""
    adapters = {"line": get_line_adapter, "telegram": get_telegram_adapter}
    if channel not in adapters:
        raise HTTPException(status_code=404, detail="Unknown channel")
    adapter = adapters[channel]()
    if adapter is None:
        raise HTTPException(
            status_code=503, detail=f"{channel} integration is not configured or disabled"
        )
    command = ProcessWebhookEventsCommand(adapter, session_factory, runner=runner)
    try:
        replayed = await command.replay(event_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if not replayed:
        raise HTTPException(status_code=404, detail="Raw event not found")
    return {"status": "ok"}
