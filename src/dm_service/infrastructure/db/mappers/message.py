from __future__ import annotations

from dm_service.domain.entities.message import Message
from dm_service.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.sender_id,
        receiver_id=model.receiver_id,
        text=model.text,
        image=model.image,
        is_read=model.is_read,
        created_at=model.created_at,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        sender_id=entity.sender_id,
        receiver_id=entity.receiver_id,
        text=entity.text,
        image=entity.image,
        is_read=entity.is_read,
        created_at=entity.created_at,
    )
