"""Payload builders for events pushed to live connections."""
from __future__ import annotations

from typing import Any
from uuid import UUID

from dm_service.domain.entities.message import Message


def message_payload(msg: Message) -> dict[str, Any]:
    return {
        "id": str(msg.id),
        "sender_id": str(msg.sender_id),
        "receiver_id": str(msg.receiver_id),
        "text": msg.text,
        "image": msg.image,
        "is_read": msg.is_read,
        "created_at": msg.created_at.isoformat(),
    }


def messages_read_payload(sender_id: UUID, receiver_id: UUID) -> dict[str, Any]:
    # sender_id: whose messages were read; receiver_id: who read them
    return {"sender_id": str(sender_id), "receiver_id": str(receiver_id)}


def message_deleted_payload(message_id: UUID) -> dict[str, Any]:
    return {"message_id": str(message_id)}


def unread_counts_payload(counts: dict[UUID, int]) -> dict[str, Any]:
    return {"counts": {str(sender_id): n for sender_id, n in counts.items()}}


def online_users_payload(user_ids: list[UUID]) -> dict[str, Any]:
    return {"user_ids": [str(uid) for uid in user_ids]}
