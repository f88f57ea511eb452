from typing import List, Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from notify_worker.constants.queue_status import NotificationStatus, TERMINAL_STATUSES
from notify_worker.repositories.base_repository import AsyncBaseRepository
from notify_worker.models.notification_job_model import NotificationJob
from notify_worker.schemas.notification_schemas import MIN_BATCH_SIZE, MAX_BATCH_SIZE

MAX_ERROR_LENGTH = 500


def clamp_limit(limit: int) -> int:
    """Clamp a candidate batch size to [1, MAX_BATCH_SIZE]."""
    return max(MIN_BATCH_SIZE, min(MAX_BATCH_SIZE, int(limit)))


def truncate_error(message: Optional[str]) -> Optional[str]:
    if message is None:
        return None
    return message[:MAX_ERROR_LENGTH]


class NotificationJobRepository(AsyncBaseRepository[NotificationJob]):
    def __init__(self):
        super().__init__(NotificationJob)

    async def fetch_candidates(
            self,
            db: AsyncSession,
            *,
            channel: str,
            now: datetime,
            limit: int = 20
    ) -> List[NotificationJob]:
        """
        Pending jobs of one channel that are due, oldest first.
        """
        stmt = (
            select(NotificationJob)
            .where(
                NotificationJob.channel == channel,
                NotificationJob.status == NotificationStatus.pending.value,
                NotificationJob.scheduled_at <= now,
            )
            .order_by(NotificationJob.created_at.asc(), NotificationJob.id.asc())
            .limit(clamp_limit(limit))
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def claim(
            self,
            db: AsyncSession,
            job_id: str,
            now: datetime
    ) -> Optional[NotificationJob]:
        """
        Move a job from pending to processing and bump its attempt count.

        Guarded by status = pending in the same UPDATE, so when several
        workers race for the same id exactly one gets the row back and the
        others get None.
        """
        rows = await self.update_where_returning(
            db,
            conditions=[
                NotificationJob.id == job_id,
                NotificationJob.status == NotificationStatus.pending.value,
            ],
            values={
                "status": NotificationStatus.processing.value,
                "attempts": NotificationJob.attempts + 1,
                "last_error": None,
                "claimed_at": now,
            },
        )
        return rows[0] if rows else None

    async def mark_sent(self, db: AsyncSession, job_id: str, now: datetime) -> int:
        # Never rewrite a row some other path already finished
        return await self.update_where(
            db,
            conditions=[
                NotificationJob.id == job_id,
                NotificationJob.status.notin_(TERMINAL_STATUSES),
            ],
            values={
                "status": NotificationStatus.sent.value,
                "processed_at": now,
                "last_error": None,
            },
        )

    async def mark_retry(
            self,
            db: AsyncSession,
            job_id: str,
            scheduled_at: datetime,
            last_error: str
    ) -> int:
        return await self.update_where(
            db,
            conditions=[
                NotificationJob.id == job_id,
                NotificationJob.status.notin_(TERMINAL_STATUSES),
            ],
            values={
                "status": NotificationStatus.pending.value,
                "scheduled_at": scheduled_at,
                "last_error": truncate_error(last_error),
            },
        )

    async def mark_failed(
            self,
            db: AsyncSession,
            job_id: str,
            now: datetime,
            last_error: str
    ) -> int:
        return await self.update_where(
            db,
            conditions=[
                NotificationJob.id == job_id,
                NotificationJob.status.notin_(TERMINAL_STATUSES),
            ],
            values={
                "status": NotificationStatus.failed.value,
                "processed_at": now,
                "last_error": truncate_error(last_error),
            },
        )

    async def requeue_stale(
            self,
            db: AsyncSession,
            *,
            channel: str,
            stale_before: datetime,
            now: datetime
    ) -> int:
        """
        Put jobs stuck in processing since before stale_before back to pending.

        attempts and last_error are left alone; the next claim increments
        attempts as usual.
        """
        return await self.update_where(
            db,
            conditions=[
                NotificationJob.channel == channel,
                NotificationJob.status == NotificationStatus.processing.value,
                NotificationJob.claimed_at < stale_before,
            ],
            values={
                "status": NotificationStatus.pending.value,
                "scheduled_at": now,
            },
        )
