"""
Timer wrapper around the batch dispatcher
For deployments without an external scheduler: runs one batch per tick
"""
import asyncio
import signal
from typing import Callable, Optional

from notify_worker.core.config import Settings
from notify_worker.core.errors import JobStoreError
from notify_worker.schemas.notification_schemas import DispatchSummary
from notify_worker.services.dispatcher import BatchDispatcher, build_dispatcher
from notify_worker.core.setup_logger import worker_logger
from notify_worker.core.logger import info, warning, error


class Worker:
    """
    Each tick is an independent invocation; nothing but statistics is kept
    between ticks, so several Worker processes can run side by side.
    """

    def __init__(
            self,
            settings: Settings,
            batch_size: int,
            poll_interval: float = 0.0,
            dispatcher_factory: Callable[[Settings], BatchDispatcher] = build_dispatcher,
    ):
        """
        Args:
            settings: validated when the dispatcher is built
            batch_size: jobs per invocation (already clamped)
            poll_interval: seconds between ticks, 0 runs a single batch
        """
        self.settings = settings
        self.batch_size = batch_size
        self.poll_interval = poll_interval
        self.dispatcher = dispatcher_factory(settings)

        self.should_shutdown = False

        # Statistics
        self.batches_run = 0
        self.jobs_sent = 0
        self.jobs_failed = 0

    def setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown"""

        def signal_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            warning(worker_logger, f"Received {signal_name} signal, finishing current batch...")
            self.should_shutdown = True

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

    async def run_once(self) -> Optional[DispatchSummary]:
        try:
            summary = await self.dispatcher.run(self.batch_size)
        except JobStoreError as e:
            error(worker_logger, "Candidate fetch failed, batch skipped", context={
                "error": str(e),
            })
            return None

        self.batches_run += 1
        self.jobs_sent += summary.sent
        self.jobs_failed += summary.failed
        return summary

    async def start(self):
        """
        Run one batch, or keep running one per poll_interval until stopped
        """
        if self.poll_interval <= 0:
            await self.run_once()
            self._log_statistics()
            return

        self.setup_signal_handlers()
        info(worker_logger, "Worker loop starting", context={
            "poll_interval": self.poll_interval,
            "batch_size": self.batch_size,
            "channel": self.settings.NOTIFY_CHANNEL,
        })

        while not self.should_shutdown:
            await self.run_once()
            await self._sleep()

        self._log_statistics()

    async def _sleep(self):
        # Sleep in short slices so a shutdown signal is noticed quickly
        remaining = self.poll_interval
        while remaining > 0 and not self.should_shutdown:
            step = min(remaining, 1.0)
            await asyncio.sleep(step)
            remaining -= step

    def stop(self):
        self.should_shutdown = True

    def _log_statistics(self):
        info(worker_logger, "Worker statistics", context={
            "batches_run": self.batches_run,
            "jobs_sent": self.jobs_sent,
            "jobs_failed": self.jobs_failed,
        })
