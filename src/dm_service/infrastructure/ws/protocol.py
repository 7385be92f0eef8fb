"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # ping | sync | mark_read | message.send
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # newMessage | messagesRead | messageDeleted | getOnlineUsers | unreadCounts | ...
    data: dict[str, Any] = {}
