from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    text: str | None
    image: str | None
    is_read: bool
    created_at: datetime

    def involves(self, user_a: UUID, user_b: UUID) -> bool:
        """True if the message belongs to the conversation between the two users."""
        return {self.sender_id, self.receiver_id} == {user_a, user_b}
