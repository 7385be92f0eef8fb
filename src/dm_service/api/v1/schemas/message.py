from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class SendMessageRequest(BaseModel):
    text: str | None = None
    image: str | None = None  # base64 data URL


class MarkReadRequest(BaseModel):
    sender_id: UUID


class MarkReadResponse(BaseModel):
    updated: int


class MessageResponse(BaseModel):
    id: UUID
    sender_id: UUID
    receiver_id: UUID
    text: str | None
    image: str | None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UnreadCountResponse(BaseModel):
    sender_id: UUID
    count: int


class DeleteMessageResponse(BaseModel):
    message_id: UUID
