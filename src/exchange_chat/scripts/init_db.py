"""Create all tables for a fresh development database."""
from __future__ import annotations

import asyncio
import logging

from exchange_chat.infrastructure.db import models  # noqa: F401  (registers tables)
from exchange_chat.infrastructure.db.base import Base
from exchange_chat.infrastructure.db.session import engine
from exchange_chat.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("Created tables: %s", ", ".join(sorted(Base.metadata.tables)))


def main() -> None:
    configure_logging()
    asyncio.run(init_db())


if __name__ == "__main__":
    main()
