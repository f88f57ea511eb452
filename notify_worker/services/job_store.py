"""
Job Store Adapter
Narrow read/update operations on notification_jobs, one session per call
"""
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from notify_worker.core.config import Settings
from notify_worker.core.errors import JobStoreError
from notify_worker.core.setup_logger import db_logger
from notify_worker.core.logger import error, debug
from notify_worker.db.database import get_session_factory
from notify_worker.models.notification_job_model import NotificationJob
from notify_worker.repositories.notification_job_repository import NotificationJobRepository


def _db_error_message(exc: SQLAlchemyError) -> str:
    # Prefer the driver's message over SQLAlchemy's wrapper with the full statement
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


class JobStore:
    """
    Every operation runs in its own session and commits before returning,
    so a claim is visible to concurrent invocations as soon as it succeeds.
    Database failures surface as JobStoreError.
    """

    def __init__(
            self,
            session_factory: async_sessionmaker,
            repository: Optional[NotificationJobRepository] = None,
    ):
        self.session_factory = session_factory
        self.repository = repository or NotificationJobRepository()

    async def _execute(
            self,
            action: str,
            operation: Callable[[AsyncSession], Awaitable[Any]],
            job_id: Optional[str] = None,
    ) -> Any:
        try:
            async with self.session_factory() as db:
                result = await operation(db)
                await db.commit()
                return result
        except SQLAlchemyError as e:
            message = _db_error_message(e)
            error(db_logger, f"Job store {action} failed", context={
                "job_id": job_id,
                "error": message,
                "error_type": type(e).__name__,
            })
            raise JobStoreError(message) from e

    async def _write_outcome(
            self,
            action: str,
            job_id: str,
            operation: Callable[[AsyncSession], Awaitable[int]],
    ) -> None:
        updated = await self._execute(action, operation, job_id=job_id)
        if not updated:
            raise JobStoreError(f"{action}: job is missing or already finished")
        debug(db_logger, f"Job store {action}", context={"job_id": job_id})

    async def fetch_candidates(self, channel: str, now: datetime, limit: int) -> List[NotificationJob]:
        return await self._execute(
            "fetch_candidates",
            lambda db: self.repository.fetch_candidates(db, channel=channel, now=now, limit=limit),
        )

    async def claim(self, job_id: str, now: datetime) -> Optional[NotificationJob]:
        """Returns the claimed row, or None when another worker got there first."""
        return await self._execute(
            "claim",
            lambda db: self.repository.claim(db, job_id, now),
            job_id=job_id,
        )

    async def mark_sent(self, job_id: str, now: datetime) -> None:
        await self._write_outcome(
            "mark_sent", job_id,
            lambda db: self.repository.mark_sent(db, job_id, now),
        )

    async def mark_retry(self, job_id: str, scheduled_at: datetime, last_error: str) -> None:
        await self._write_outcome(
            "mark_retry", job_id,
            lambda db: self.repository.mark_retry(db, job_id, scheduled_at, last_error),
        )

    async def mark_failed(self, job_id: str, now: datetime, last_error: str) -> None:
        await self._write_outcome(
            "mark_failed", job_id,
            lambda db: self.repository.mark_failed(db, job_id, now, last_error),
        )

    async def requeue_stale(self, channel: str, stale_before: datetime, now: datetime) -> int:
        return await self._execute(
            "requeue_stale",
            lambda db: self.repository.requeue_stale(
                db, channel=channel, stale_before=stale_before, now=now
            ),
        )


def build_job_store(settings: Settings) -> JobStore:
    """Job store bound to the configured database."""
    return JobStore(get_session_factory(settings.async_database_url))
