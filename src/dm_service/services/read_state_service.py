from __future__ import annotations

import logging
import uuid

from dm_service.application.uow import UnitOfWork
from dm_service.domain.value_objects.enums import EventName
from dm_service.realtime.events import messages_read_payload
from dm_service.realtime.router import DeliveryRouter

logger = logging.getLogger(__name__)


async def mark_conversation_read(
    reader_id: uuid.UUID,
    other_party_id: uuid.UUID,
    uow: UnitOfWork,
    router: DeliveryRouter,
) -> int:
    """Mark everything ``other_party_id`` sent to ``reader_id`` as read.

    Safe to repeat: a second call matches nothing. The read receipt goes to
    the original sender after the update is committed.
    """
    updated = await uow.messages_w.mark_read(other_party_id, reader_id)
    await uow.commit()
    logger.debug("%s read %d message(s) from %s", reader_id, updated, other_party_id)

    await router.push(
        other_party_id,
        EventName.MESSAGES_READ,
        messages_read_payload(other_party_id, reader_id),
    )
    return updated


async def unread_counts(
    user_id: uuid.UUID,
    uow: UnitOfWork,
) -> dict[uuid.UUID, int]:
    """Per-sender unread counts for ``user_id``; the authoritative resync source."""
    return await uow.messages.unread_counts(user_id)
