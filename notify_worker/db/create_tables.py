"""
Create the notification_jobs table.
Run once against a fresh database: python -m notify_worker.db.create_tables
"""
import asyncio

from notify_worker.core.config import settings
from notify_worker.core.errors import ConfigurationError
from notify_worker.core.setup_logger import worker_logger
from notify_worker.core.logger import info
from notify_worker.db.database import Base, get_engine, close_database
from notify_worker.models import NotificationJob  # noqa: F401 - registers the table


async def create_tables(database_url=None):
    database_url = database_url or settings.async_database_url
    if not database_url:
        raise ConfigurationError("Database env missing (DB_URL)")
    engine = get_engine(database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    info(worker_logger, "Database tables created", context={
        "tables": sorted(Base.metadata.tables.keys())
    })


async def main():
    try:
        await create_tables()
    finally:
        await close_database()


if __name__ == "__main__":
    asyncio.run(main())
