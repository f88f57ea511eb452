"""
Batch Dispatcher
Runs one pass over a bounded batch of due jobs for a single channel:
claim -> format -> deliver -> record outcome
"""
from typing import Optional

from notify_worker.core.clock import Clock, utc_now
from notify_worker.core.config import Settings
from notify_worker.core.errors import DeliveryError, JobStoreError
from notify_worker.core.setup_logger import worker_logger
from notify_worker.core.logger import info, debug, warning, error
from notify_worker.models.notification_job_model import NotificationJob
from notify_worker.schemas.notification_schemas import DispatchSummary, DEFAULT_BATCH_SIZE
from notify_worker.services.job_store import JobStore, build_job_store
from notify_worker.services.line_client import LinePushClient, is_retryable
from notify_worker.services.message_formatter import build_message_text
from notify_worker.services.retry_policy import should_retry, next_retry_at, backoff_minutes


class BatchDispatcher:
    """
    Stateless between runs: all coordination with concurrent invocations
    goes through the conditional claim in the job store. Jobs are handled
    sequentially in created_at order and claimed at most once per run.
    """

    def __init__(
            self,
            store: JobStore,
            client: LinePushClient,
            channel: str,
            app_base_url: Optional[str] = None,
            clock: Clock = utc_now,
    ):
        self.store = store
        self.client = client
        self.channel = channel
        self.app_base_url = app_base_url
        self.clock = clock

    async def run(self, batch_size: int = DEFAULT_BATCH_SIZE) -> DispatchSummary:
        """
        Process one batch

        Raises:
            JobStoreError: the candidate query itself failed
        """
        summary = DispatchSummary()
        now = self.clock()

        jobs = await self.store.fetch_candidates(self.channel, now, batch_size)
        summary.scanned = len(jobs)

        debug(worker_logger, "Fetched candidate jobs", context={
            "channel": self.channel,
            "batch_size": batch_size,
            "scanned": summary.scanned,
        })

        for job in jobs:
            await self._process_job(job, summary)

        info(worker_logger, "Batch finished", context=summary.to_response())
        return summary

    async def _process_job(self, job: NotificationJob, summary: DispatchSummary) -> None:
        next_attempt = (job.attempts or 0) + 1

        try:
            claimed = await self.store.claim(job.id, self.clock())
        except JobStoreError as e:
            summary.errors.append(f"{job.id}: {e}")
            return

        if claimed is None:
            # Another invocation claimed it, or it already left pending
            debug(worker_logger, "Claim conflict, skipping job", context={"job_id": job.id})
            return

        summary.claimed += 1
        next_attempt = claimed.attempts or next_attempt

        try:
            await self.client.push_text(build_message_text(claimed, self.app_base_url))
        except DeliveryError as e:
            await self._record_failure(claimed, next_attempt, e, summary)
            return

        try:
            await self.store.mark_sent(job.id, self.clock())
        except JobStoreError as e:
            # Delivered but not recorded: the row stays in processing
            error(worker_logger, "Job delivered but mark_sent failed", context={
                "job_id": job.id,
                "error": str(e),
            })
            summary.failed += 1
            summary.errors.append(f"{job.id}: {e}")
            return

        summary.sent += 1
        info(worker_logger, "Notification sent", context={
            "job_id": job.id,
            "event_type": claimed.event_type,
            "attempts": next_attempt,
        })

    async def _record_failure(
            self,
            job: NotificationJob,
            next_attempt: int,
            err: DeliveryError,
            summary: DispatchSummary,
    ) -> None:
        retryable = is_retryable(err)
        last_error = str(err)

        if should_retry(retryable, next_attempt):
            retry_at = next_retry_at(self.clock(), next_attempt)
            try:
                await self.store.mark_retry(job.id, retry_at, last_error)
            except JobStoreError as e:
                summary.failed += 1
                summary.errors.append(f"{job.id}: {e}")
                return

            summary.retry_scheduled += 1
            warning(worker_logger, "Delivery failed, retry scheduled", context={
                "job_id": job.id,
                "attempts": next_attempt,
                "status_code": err.status_code,
                "backoff_minutes": backoff_minutes(next_attempt),
                "error": last_error,
            })
            return

        try:
            await self.store.mark_failed(job.id, self.clock(), last_error)
        except JobStoreError as e:
            summary.errors.append(f"{job.id}: {e}")
        summary.failed += 1

        error(worker_logger, "Delivery failed permanently", context={
            "job_id": job.id,
            "attempts": next_attempt,
            "status_code": err.status_code,
            "retryable": retryable,
            "error": last_error,
        })


def build_dispatcher(settings: Settings, clock: Clock = utc_now) -> BatchDispatcher:
    """
    Wire a dispatcher from settings

    Raises:
        ConfigurationError: database or LINE settings are missing
    """
    settings.validate_for_dispatch()
    return BatchDispatcher(
        store=build_job_store(settings),
        client=LinePushClient.from_settings(settings),
        channel=settings.NOTIFY_CHANNEL,
        app_base_url=settings.app_base_url,
        clock=clock,
    )
