from __future__ import annotations

import logging
import uuid
from datetime import timedelta

from dm_service.application.exceptions import ForbiddenError, NotFoundError
from dm_service.application.ports.clock import Clock, SystemClock
from dm_service.application.uow import UnitOfWork
from dm_service.domain.value_objects.enums import EventName
from dm_service.realtime.events import message_deleted_payload
from dm_service.realtime.router import DeliveryRouter

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(hours=1)

_system_clock = SystemClock()


async def delete_message(
    requester_id: uuid.UUID,
    message_id: uuid.UUID,
    uow: UnitOfWork,
    router: DeliveryRouter,
    *,
    clock: Clock = _system_clock,
    retention: timedelta = DEFAULT_RETENTION,
) -> uuid.UUID:
    """Hard-delete a message its sender posted within the retention window.

    The age check runs before the ownership check, so a stale message is
    reported as too old even to someone who never owned it.
    """
    msg = await uow.messages.get_by_id(message_id)
    if msg is None:
        raise NotFoundError("Message not found")

    if clock.now() - msg.created_at > retention:
        raise ForbiddenError("Message is too old to delete")

    if msg.sender_id != requester_id:
        raise ForbiddenError("You can only delete your own messages")

    # A concurrent delete may have won since the read.
    if not await uow.messages_w.delete(message_id):
        raise NotFoundError("Message not found")
    await uow.commit()
    logger.info("Message %s deleted by %s", message_id, requester_id)

    await router.push(
        msg.receiver_id,
        EventName.MESSAGE_DELETED,
        message_deleted_payload(message_id),
    )
    return message_id
