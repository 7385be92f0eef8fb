from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from dm_service.api.deps import (
    ClockDep,
    CurrentPrincipal,
    ImageStorageDep,
    RetentionDep,
    RouterDep,
    UoWDep,
)
from dm_service.api.v1.schemas.message import (
    DeleteMessageResponse,
    MarkReadRequest,
    MarkReadResponse,
    MessageResponse,
    SendMessageRequest,
    UnreadCountResponse,
)
from dm_service.api.v1.schemas.user import ContactResponse
from dm_service.services import message_service, read_state_service, retraction_service

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


@router.get("/users", response_model=list[ContactResponse])
async def list_contacts(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[ContactResponse]:
    users = await message_service.list_contacts(principal.user_id, uow)
    return [ContactResponse.model_validate(u, from_attributes=True) for u in users]


@router.get("/unread-count", response_model=list[UnreadCountResponse])
async def unread_count(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[UnreadCountResponse]:
    counts = await read_state_service.unread_counts(principal.user_id, uow)
    return [UnreadCountResponse(sender_id=sender_id, count=n) for sender_id, n in counts.items()]


@router.put("/mark-read", response_model=MarkReadResponse)
async def mark_read(
    body: MarkReadRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    delivery: RouterDep,
) -> MarkReadResponse:
    updated = await read_state_service.mark_conversation_read(
        principal.user_id, body.sender_id, uow, delivery,
    )
    return MarkReadResponse(updated=updated)


@router.get("/{user_id}", response_model=list[MessageResponse])
async def get_conversation(
    user_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[MessageResponse]:
    messages = await message_service.get_conversation(principal.user_id, user_id, uow)
    return [MessageResponse.model_validate(m, from_attributes=True) for m in messages]


@router.post("/send/{user_id}", response_model=MessageResponse, status_code=201)
async def send_message(
    user_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    delivery: RouterDep,
    images: ImageStorageDep,
    clock: ClockDep,
) -> MessageResponse:
    # Reject unknown receivers before the image is written.
    await message_service.require_receiver(user_id, uow)
    image_url = await images.upload(body.image) if body.image else None
    msg = await message_service.send_message(
        principal.user_id,
        user_id,
        body.text,
        image_url,
        uow,
        delivery,
        clock=clock,
    )
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.delete("/{message_id}", response_model=DeleteMessageResponse)
async def delete_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    delivery: RouterDep,
    clock: ClockDep,
    retention: RetentionDep,
) -> DeleteMessageResponse:
    deleted_id = await retraction_service.delete_message(
        principal.user_id,
        message_id,
        uow,
        delivery,
        clock=clock,
        retention=retention,
    )
    return DeleteMessageResponse(message_id=deleted_id)
