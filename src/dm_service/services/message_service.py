from __future__ import annotations

import logging
import uuid

from dm_service.application.exceptions import NotFoundError
from dm_service.application.ports.clock import Clock, SystemClock
from dm_service.application.uow import UnitOfWork
from dm_service.domain.entities.message import Message
from dm_service.domain.entities.user import User
from dm_service.realtime.router import DeliveryRouter

logger = logging.getLogger(__name__)

_system_clock = SystemClock()


async def require_receiver(receiver_id: uuid.UUID, uow: UnitOfWork) -> User:
    receiver = await uow.users.get_by_id(receiver_id)
    if receiver is None:
        raise NotFoundError("Receiver not found")
    return receiver


async def send_message(
    sender_id: uuid.UUID,
    receiver_id: uuid.UUID,
    text: str | None,
    image: str | None,
    uow: UnitOfWork,
    router: DeliveryRouter,
    *,
    clock: Clock = _system_clock,
) -> Message:
    """Persist a message, then push it to the receiver if they are online.

    The returned message is what the sender renders; the push only serves
    the receiver.
    """
    await require_receiver(receiver_id, uow)

    if text is None and image is None:
        logger.warning("Empty message from %s to %s", sender_id, receiver_id)

    msg = Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        receiver_id=receiver_id,
        text=text,
        image=image,
        is_read=False,
        created_at=clock.now(),
    )
    msg = await uow.messages_w.create(msg)
    await uow.commit()

    await router.deliver(msg)
    return msg


async def get_conversation(
    user_a: uuid.UUID,
    user_b: uuid.UUID,
    uow: UnitOfWork,
) -> list[Message]:
    return await uow.messages.list_between(user_a, user_b)


async def list_contacts(
    exclude_user_id: uuid.UUID,
    uow: UnitOfWork,
) -> list[User]:
    return await uow.users.list_except(exclude_user_id)
