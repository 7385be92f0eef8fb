from __future__ import annotations

from typing import Protocol
from uuid import UUID

from dm_service.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_between(self, user_a: UUID, user_b: UUID) -> list[Message]:
        """All messages exchanged by the pair, oldest first."""
        ...

    async def unread_counts(self, receiver_id: UUID) -> dict[UUID, int]:
        """Unread messages addressed to ``receiver_id``, counted per sender."""
        ...


class MessageWriter(Protocol):
    async def create(self, message: Message) -> Message: ...

    async def mark_read(self, sender_id: UUID, receiver_id: UUID) -> int:
        """Flag every unread message from sender to receiver as read. Returns rows changed."""
        ...

    async def delete(self, message_id: UUID) -> bool: ...
