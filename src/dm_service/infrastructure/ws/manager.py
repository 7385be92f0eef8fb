"""In-process WebSocket connection manager."""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import WebSocket

from dm_service.domain.value_objects.enums import EventName
from dm_service.infrastructure.ws.protocol import WsOutbound
from dm_service.realtime.events import online_users_payload
from dm_service.realtime.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Owns the live WebSocket of every connected user.

    Feeds connect/disconnect into the presence registry and serves as the
    live transport for the delivery router.
    """

    def __init__(self, presence: PresenceRegistry[WebSocket] | None = None) -> None:
        self.presence: PresenceRegistry[WebSocket] = presence if presence is not None else PresenceRegistry()

    async def connect(self, ws: WebSocket, user_id: UUID) -> None:
        await ws.accept()
        self.presence.register(user_id, ws)
        logger.debug("WS connected: %s (online=%d)", user_id, len(self.presence))
        await self.broadcast_online_users()

    async def disconnect(self, ws: WebSocket, user_id: UUID) -> None:
        if self.presence.unregister(user_id, ws):
            logger.debug("WS disconnected: %s (online=%d)", user_id, len(self.presence))
            await self.broadcast_online_users()

    async def send(self, handle: WebSocket, event: str, data: dict[str, Any]) -> None:
        raw = WsOutbound(type=str(event), data=data).model_dump_json()
        await handle.send_text(raw)

    async def broadcast_online_users(self) -> None:
        """Send the current online list to every connection."""
        data = online_users_payload(self.presence.online_user_ids())
        raw = WsOutbound(type=str(EventName.ONLINE_USERS), data=data).model_dump_json()
        for ws in self.presence.handles():
            try:
                await ws.send_text(raw)
            except Exception:
                logger.debug("Online-users broadcast skipped a dead socket", exc_info=True)

    async def close_all(self, code: int = 1001) -> None:
        """Drain on shutdown."""
        for ws in self.presence.handles():
            try:
                await ws.close(code=code)
            except Exception:
                logger.debug("Close failed for a socket during shutdown", exc_info=True)
        self.presence.clear()
