"""Create the database schema (development / first deploy)."""
from __future__ import annotations

import asyncio
import logging

from dm_service.config import settings
from dm_service.infrastructure.db import models  # noqa: F401
from dm_service.infrastructure.db.base import Base
from dm_service.infrastructure.db.session import engine
from dm_service.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("Created tables: %s", ", ".join(sorted(Base.metadata.tables)))


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(create_tables())


if __name__ == "__main__":
    main()
