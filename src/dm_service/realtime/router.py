"""Best-effort real-time delivery of committed state to live connections."""
from __future__ import annotations

import logging
import uuid
from typing import Any, Awaitable, Callable
from uuid import UUID

from dm_service.application.ports.bus import EventPublisher
from dm_service.application.ports.transport import LiveTransport
from dm_service.domain.entities.message import Message
from dm_service.domain.value_objects.enums import EventName
from dm_service.realtime.events import message_payload
from dm_service.realtime.presence import PresenceRegistry

logger = logging.getLogger(__name__)

RELAY_EVENT_TYPE = "relay"


class DeliveryRouter:
    """Pushes events to a user's live connection, if they have one.

    Callers must commit durable state before pushing. A push is
    fire-and-forget: failures are logged and dropped, never retried and
    never raised to the caller.

    With ``relay`` set, a push for a user not connected to this process is
    published on ``relay_channel`` so the process holding the connection can
    deliver it. ``on_evict`` runs after a dead connection is dropped from
    presence, so the online list can be rebroadcast.
    """

    def __init__(
        self,
        presence: PresenceRegistry[Any],
        transport: LiveTransport,
        *,
        relay: EventPublisher | None = None,
        relay_channel: str = "dm.relay",
        instance_id: str | None = None,
        on_evict: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._presence = presence
        self._transport = transport
        self._relay = relay
        self._relay_channel = relay_channel
        self.instance_id = instance_id or uuid.uuid4().hex
        self._on_evict = on_evict

    @property
    def presence(self) -> PresenceRegistry[Any]:
        return self._presence

    async def deliver(self, message: Message) -> bool:
        """Push a freshly persisted message to its receiver."""
        delivered = await self.push(
            message.receiver_id, EventName.NEW_MESSAGE, message_payload(message),
        )
        if not delivered:
            logger.debug("Receiver %s offline, message %s left unread", message.receiver_id, message.id)
        return delivered

    async def push(self, user_id: UUID, event: str, data: dict[str, Any]) -> bool:
        """Push to ``user_id``; returns True if a local connection received it."""
        if await self.push_local(user_id, event, data):
            return True
        if self._relay is not None:
            await self._publish_relay(self._relay, user_id, event, data)
        return False

    async def push_local(self, user_id: UUID, event: str, data: dict[str, Any]) -> bool:
        handle = self._presence.lookup(user_id)
        if handle is None:
            return False
        try:
            await self._transport.send(handle, event, data)
        except Exception:
            # Target vanished between lookup and send.
            logger.warning("Push of %s to %s failed", event, user_id, exc_info=True)
            if self._presence.unregister(user_id, handle) and self._on_evict is not None:
                await self._notify_evicted(self._on_evict)
            return False
        logger.debug("Pushed %s to %s", event, user_id)
        return True

    async def handle_relay(self, data: dict[str, Any]) -> bool:
        """Deliver an event relayed by another process."""
        if data.get("origin") == self.instance_id:
            return False
        try:
            user_id = UUID(data["user_id"])
            event = data["event"]
            payload = data.get("data") or {}
        except (KeyError, ValueError):
            logger.warning("Malformed relay event dropped: %r", data)
            return False
        return await self.push_local(user_id, event, payload)

    async def _notify_evicted(self, callback: Callable[[], Awaitable[None]]) -> None:
        try:
            await callback()
        except Exception:
            logger.warning("Presence rebroadcast after eviction failed", exc_info=True)

    async def _publish_relay(
        self,
        relay: EventPublisher,
        user_id: UUID,
        event: str,
        data: dict[str, Any],
    ) -> None:
        try:
            await relay.publish(
                self._relay_channel,
                {
                    "event_type": RELAY_EVENT_TYPE,
                    "user_id": str(user_id),
                    "event": event,
                    "data": data,
                    "origin": self.instance_id,
                },
            )
        except Exception:
            logger.warning("Relay publish of %s for %s failed", event, user_id, exc_info=True)
