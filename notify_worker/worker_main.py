"""
Worker Entry Point
Runs the notification dispatcher from a scheduler (cron, systemd timer...)
Run with: python -m notify_worker.worker_main [--batch-size N] [--loop SECONDS] [--requeue-stale]
"""

import argparse
import asyncio
import sys
from datetime import timedelta

from notify_worker.core.clock import utc_now
from notify_worker.core.config import get_settings
from notify_worker.core.errors import ConfigurationError, JobStoreError
from notify_worker.db.database import close_database
from notify_worker.schemas.notification_schemas import parse_batch_size
from notify_worker.services.job_store import build_job_store
from notify_worker.workers.worker import Worker
from notify_worker.core.setup_logger import worker_logger
from notify_worker.core.logger import info, critical


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deliver pending LINE group notifications")
    parser.add_argument("--batch-size", type=int, default=None, help="Jobs per batch (1-100)")
    parser.add_argument(
        "--loop",
        type=float,
        default=None,
        help="Seconds between batches; omit to use POLL_INTERVAL (0 runs once)",
    )
    parser.add_argument(
        "--requeue-stale",
        action="store_true",
        help="Reset jobs stuck in processing back to pending and exit",
    )
    return parser.parse_args(argv)


async def requeue_stale(settings) -> int:
    store = build_job_store(settings)
    now = utc_now()
    count = await store.requeue_stale(
        settings.NOTIFY_CHANNEL,
        stale_before=now - timedelta(minutes=settings.STALE_PROCESSING_MINUTES),
        now=now,
    )
    info(worker_logger, "Requeued stale jobs", context={"requeued": count})
    return count


async def main(argv=None) -> int:
    args = parse_args(argv)
    settings = get_settings()

    try:
        if args.requeue_stale:
            await requeue_stale(settings)
            return 0

        batch_size = settings.DEFAULT_BATCH_SIZE
        if args.batch_size is not None:
            batch_size = parse_batch_size({"batchSize": args.batch_size}, batch_size)

        worker = Worker(
            settings=settings,
            batch_size=batch_size,
            poll_interval=args.loop if args.loop is not None else settings.POLL_INTERVAL,
        )
        await worker.start()
        return 0

    except (ConfigurationError, JobStoreError) as e:
        critical(worker_logger, "Worker failed to start", context={
            "error": str(e),
            "error_type": type(e).__name__
        })
        return 1

    finally:
        await close_database()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
