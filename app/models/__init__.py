from app.models.chat_session import ChatSession
from app.models.media_asset import MediaAsset
from app.models.message import Message
from app.models.owner import Owner
from app.models.raw_event import RawEvent
from app.models.room import Room
from app.models.summary import Summary

__all__ = [
    "ChatSession",
    "MediaAsset",
    "Message",
    "Owner",
    "RawEvent",
    "Room",
    "Summary",
]
