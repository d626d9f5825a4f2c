"""
create_tables.py
----------------
One-shot script to create all database tables.
Use this for quick setup. For production migrations, use Alembic instead.

Usage:
    python create_tables.py
"""

import asyncio

from sqlalchemy.ext.asyncio import create_async_engine

from welo.core.config import settings
from welo.core.logging import configure_logging, get_logger
from welo.models import Base  # Imports all models so metadata is populated

logger = get_logger(__name__)


async def create_all_tables() -> None:
    engine = create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("All tables created", tables=sorted(Base.metadata.tables))


if __name__ == "__main__":
    configure_logging()
    asyncio.run(create_all_tables())
