from datetime import timedelta

import pytest

from notify_worker import worker_main
from notify_worker.core.clock import utc_now
from notify_worker.core.errors import JobStoreError
from notify_worker.schemas.notification_schemas import DispatchSummary
from notify_worker.services.dispatcher import BatchDispatcher
from notify_worker.workers.worker import Worker
from tests.conftest import make_settings


class ScriptedDispatcher:
    def __init__(self, results):
        self.results = list(results)
        self.batch_sizes = []

    async def run(self, batch_size):
        self.batch_sizes.append(batch_size)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.mark.asyncio
async def test_single_run_without_poll_interval():
    dispatcher = ScriptedDispatcher([DispatchSummary(scanned=1, claimed=1, sent=1)])
    worker = Worker(make_settings(), batch_size=10, dispatcher_factory=lambda s: dispatcher)

    await worker.start()

    assert dispatcher.batch_sizes == [10]
    assert worker.batches_run == 1
    assert worker.jobs_sent == 1


@pytest.mark.asyncio
async def test_fetch_failure_does_not_stop_the_worker():
    dispatcher = ScriptedDispatcher([
        JobStoreError("connection refused"),
        DispatchSummary(scanned=2, claimed=2, sent=1, failed=1),
    ])
    worker = Worker(make_settings(), batch_size=20, dispatcher_factory=lambda s: dispatcher)

    assert await worker.run_once() is None
    summary = await worker.run_once()

    assert summary.sent == 1
    assert worker.batches_run == 1
    assert worker.jobs_failed == 1


def wire_worker_main(monkeypatch, settings, store, client):
    dispatchers = []

    def build_worker(settings, batch_size, poll_interval):
        dispatcher = BatchDispatcher(store=store, client=client, channel=settings.NOTIFY_CHANNEL)
        dispatchers.append(dispatcher)
        return Worker(settings, batch_size, poll_interval, dispatcher_factory=lambda s: dispatcher)

    monkeypatch.setattr(worker_main, "get_settings", lambda: settings)
    monkeypatch.setattr(worker_main, "build_job_store", lambda s: store)
    monkeypatch.setattr(worker_main, "Worker", build_worker)
    return dispatchers


@pytest.mark.asyncio
@pytest.mark.parametrize("batch_size,expected_sent", [("0", 1), ("-3", 1), ("2", 2), ("500", 3)])
async def test_main_clamps_batch_size(
        monkeypatch, store, insert_job, line_gateway, batch_size, expected_sent
):
    now = utc_now()
    for minutes in (3, 2, 1):
        await insert_job(
            created_at=now - timedelta(minutes=minutes), scheduled_at=now - timedelta(minutes=5)
        )
    wire_worker_main(monkeypatch, make_settings(), store, line_gateway.client())

    exit_code = await worker_main.main(["--batch-size", batch_size])

    assert exit_code == 0
    assert len(line_gateway.requests) == expected_sent


@pytest.mark.asyncio
async def test_main_requeues_stale_jobs_and_exits(
        monkeypatch, store, insert_job, load_job, line_gateway
):
    stale = await insert_job(status="processing", attempts=1, claimed_at=utc_now() - timedelta(hours=2))
    fresh = await insert_job(status="processing", attempts=1, claimed_at=utc_now())
    dispatchers = wire_worker_main(
        monkeypatch, make_settings(STALE_PROCESSING_MINUTES=30), store, line_gateway.client()
    )

    exit_code = await worker_main.main(["--requeue-stale"])

    assert exit_code == 0
    assert (await load_job(stale.id)).status == "pending"
    assert (await load_job(stale.id)).attempts == 1
    assert (await load_job(fresh.id)).status == "processing"
    # requeue only, no batch is dispatched
    assert dispatchers == []
    assert line_gateway.requests == []


@pytest.mark.asyncio
async def test_main_reports_missing_configuration(monkeypatch):
    monkeypatch.setattr(worker_main, "get_settings", lambda: make_settings(LINE_GROUP_ID=""))

    assert await worker_main.main([]) == 1
