import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from notify_worker.core.errors import JobStoreError
from notify_worker.services.job_store import JobStore
from tests.conftest import NOW, naive


@pytest.mark.asyncio
async def test_fetch_candidates_filters_and_orders(store, insert_job):
    second = await insert_job(created_at=NOW - timedelta(minutes=5))
    first = await insert_job(created_at=NOW - timedelta(minutes=9))
    await insert_job(channel="email")
    await insert_job(status="processing")
    await insert_job(status="sent")
    await insert_job(scheduled_at=NOW + timedelta(minutes=1))

    jobs = await store.fetch_candidates("line_group", NOW, 20)

    assert [job.id for job in jobs] == [first.id, second.id]


@pytest.mark.asyncio
async def test_fetch_candidates_includes_jobs_due_exactly_now(store, insert_job):
    job = await insert_job(scheduled_at=NOW)

    jobs = await store.fetch_candidates("line_group", NOW, 20)

    assert [j.id for j in jobs] == [job.id]


@pytest.mark.asyncio
async def test_fetch_candidates_clamps_limit(store, insert_job):
    for i in range(3):
        await insert_job(created_at=NOW - timedelta(minutes=30 - i))

    assert len(await store.fetch_candidates("line_group", NOW, 0)) == 1
    assert len(await store.fetch_candidates("line_group", NOW, -5)) == 1
    assert len(await store.fetch_candidates("line_group", NOW, 500)) == 3


@pytest.mark.asyncio
async def test_claim_moves_job_to_processing(store, insert_job, load_job):
    job = await insert_job(attempts=2, last_error="old failure")

    claimed = await store.claim(job.id, NOW)

    assert claimed.id == job.id
    assert claimed.status == "processing"
    assert claimed.attempts == 3
    assert claimed.last_error is None

    row = await load_job(job.id)
    assert row.status == "processing"
    assert row.attempts == 3
    assert naive(row.claimed_at) == naive(NOW)


@pytest.mark.asyncio
async def test_concurrent_claims_only_one_wins(store, insert_job, load_job):
    job = await insert_job(attempts=0)

    results = await asyncio.gather(store.claim(job.id, NOW), store.claim(job.id, NOW))

    winners = [row for row in results if row is not None]
    assert len(winners) == 1
    assert (await load_job(job.id)).attempts == 1


@pytest.mark.asyncio
async def test_claim_skips_non_pending_jobs(store, insert_job, load_job):
    for status in ("processing", "sent", "failed"):
        job = await insert_job(status=status, attempts=1)

        assert await store.claim(job.id, NOW) is None
        assert (await load_job(job.id)).attempts == 1


@pytest.mark.asyncio
async def test_claim_unknown_id_returns_none(store):
    assert await store.claim("does-not-exist", NOW) is None


@pytest.mark.asyncio
async def test_mark_sent(store, insert_job, load_job):
    job = await insert_job(status="processing", last_error="x")

    await store.mark_sent(job.id, NOW)

    row = await load_job(job.id)
    assert row.status == "sent"
    assert naive(row.processed_at) == naive(NOW)
    assert row.last_error is None


@pytest.mark.asyncio
async def test_mark_retry_reschedules_and_truncates_error(store, insert_job, load_job):
    job = await insert_job(status="processing", attempts=1)
    retry_at = NOW + timedelta(minutes=1)

    await store.mark_retry(job.id, retry_at, "e" * 800)

    row = await load_job(job.id)
    assert row.status == "pending"
    assert naive(row.scheduled_at) == naive(retry_at)
    assert row.last_error == "e" * 500
    assert row.attempts == 1
    assert row.processed_at is None


@pytest.mark.asyncio
async def test_mark_failed(store, insert_job, load_job):
    job = await insert_job(status="processing", attempts=5)

    await store.mark_failed(job.id, NOW, "LINE API 400: bad request")

    row = await load_job(job.id)
    assert row.status == "failed"
    assert naive(row.processed_at) == naive(NOW)
    assert row.last_error == "LINE API 400: bad request"


@pytest.mark.asyncio
async def test_outcome_writes_do_not_resurrect_terminal_jobs(store, insert_job, load_job):
    job = await insert_job(status="failed", last_error="gave up")

    with pytest.raises(JobStoreError):
        await store.mark_sent(job.id, NOW)
    with pytest.raises(JobStoreError):
        await store.mark_retry(job.id, NOW, "again")

    row = await load_job(job.id)
    assert row.status == "failed"
    assert row.last_error == "gave up"


@pytest.mark.asyncio
async def test_requeue_stale_only_touches_old_processing_jobs(store, insert_job, load_job):
    stale = await insert_job(
        status="processing", attempts=2, last_error="LINE API 500: busy",
        claimed_at=NOW - timedelta(hours=2),
    )
    fresh = await insert_job(status="processing", claimed_at=NOW - timedelta(minutes=1))
    other_channel = await insert_job(
        channel="email", status="processing", claimed_at=NOW - timedelta(hours=2)
    )

    count = await store.requeue_stale("line_group", stale_before=NOW - timedelta(minutes=30), now=NOW)

    assert count == 1
    row = await load_job(stale.id)
    assert row.status == "pending"
    assert row.attempts == 2
    assert row.last_error == "LINE API 500: busy"
    assert naive(row.scheduled_at) == naive(NOW)
    assert (await load_job(fresh.id)).status == "processing"
    assert (await load_job(other_channel.id)).status == "processing"


@pytest.mark.asyncio
async def test_database_errors_surface_as_job_store_errors():
    class BrokenSession:
        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return False

        async def execute(self, *args, **kwargs):
            raise OperationalError("UPDATE notification_jobs", {}, Exception("connection reset"))

        async def rollback(self):
            pass

    store = JobStore(lambda: BrokenSession())

    with pytest.raises(JobStoreError, match="connection reset"):
        await store.claim("job-1", NOW)
    with pytest.raises(JobStoreError):
        await store.fetch_candidates("line_group", NOW, 20)
