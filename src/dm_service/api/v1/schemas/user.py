from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ContactResponse(BaseModel):
    id: UUID
    full_name: str
    email: str
    profile_pic: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class OnlineUsersResponse(BaseModel):
    user_ids: list[UUID]
