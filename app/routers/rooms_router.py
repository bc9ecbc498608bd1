"""Rooms API: list and get."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi_pagination import Page, Params
from fastapi_pagination.ext.sqlalchemy import paginate
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.room import Room
from app.routers.utils.dependencies import get_room_by_id
from app.schemas.room import RoomRead

rooms_router = APIRouter(prefix="/rooms", tags=["Room"])


@rooms_router.get("", response_model=Page[RoomRead])
def list_rooms(
    params: Params = Depends(),
    owner_id: Optional[UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
) -> Page[RoomRead]:
    """List rooms by most recent activity."""
    stmt = select(Room)
    if owner_id:
        stmt = stmt.where(Room.owner_id == owner_id)
    if is_active is not None:
        stmt = stmt.where(Room.is_active == is_active)
    stmt = stmt.order_by(Room.last_activity_at.desc(), Room.created_at.desc())
    return paginate(
        db,
        stmt,
        params=params,
        transformer=lambda items: [RoomRead.model_validate(r) for r in items],
    )


@rooms_router.get("/{room_id}", response_model=RoomRead)
def get_room(room: Room = Depends(get_room_by_id)) -> RoomRead:
    return RoomRead.model_validate(room)
