"""Seed development data: a few users and a conversation between two of them."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from dm_service.config import settings
from dm_service.domain.entities.message import Message
from dm_service.domain.entities.user import User
from dm_service.infrastructure.db.mappers import user as user_mapper
from dm_service.infrastructure.db.session import AsyncSessionLocal
from dm_service.infrastructure.db.uow import SqlAlchemyUoW
from dm_service.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def seed() -> None:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        now = datetime.now(timezone.utc)

        users = [
            User(id=uuid.uuid4(), full_name=name, email=email, profile_pic=None, created_at=now)
            for name, email in [
                ("Alice Nguyen", "alice@example.com"),
                ("Bob Tran", "bob@example.com"),
                ("Carol Le", "carol@example.com"),
            ]
        ]
        for user in users:
            session.add(user_mapper.entity_to_model(user))
        await uow.flush()

        alice, bob, _carol = users
        messages_data = [
            (alice, bob, "Hi Bob!", False),
            (bob, alice, "Hey Alice, what's up?", False),
            (alice, bob, "Lunch tomorrow?", False),
        ]
        for i, (sender, receiver, text, is_read) in enumerate(messages_data):
            await uow.messages_w.create(
                Message(
                    id=uuid.uuid4(),
                    sender_id=sender.id,
                    receiver_id=receiver.id,
                    text=text,
                    image=None,
                    is_read=is_read,
                    created_at=now - timedelta(minutes=len(messages_data) - i),
                )
            )

        await uow.commit()
        logger.info("Seeded %d users and %d messages", len(users), len(messages_data))
        for user in users:
            logger.info("  %s  %s", user.id, user.email)


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
