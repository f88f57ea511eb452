import json
import os

# Keep test runs from writing rotated log files
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from notify_worker.core.config import Settings
from notify_worker.db import Base
from notify_worker.models import NotificationJob
from notify_worker.services.job_store import JobStore
from notify_worker.services.line_client import LinePushClient

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


def naive(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands timestamps back without tzinfo
    if value is None:
        return None
    return value.replace(tzinfo=None)


def make_settings(**overrides) -> Settings:
    values = {
        "DB_URL": "sqlite+aiosqlite:///:memory:",
        "LINE_CHANNEL_ACCESS_TOKEN": "line-token",
        "LINE_GROUP_ID": "C-group",
        "LINE_WORKER_SECRET": None,
        "APP_BASE_URL": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory) -> JobStore:
    return JobStore(session_factory)


@pytest.fixture
def insert_job(session_factory):
    async def _insert(**fields: Any) -> NotificationJob:
        values: Dict[str, Any] = {
            "id": str(uuid4()),
            "channel": "line_group",
            "event_type": "ticket_created",
            "ticket_id": None,
            "payload": {},
            "attempts": 0,
            "status": "pending",
            "scheduled_at": NOW - timedelta(minutes=5),
            "created_at": NOW - timedelta(minutes=10),
        }
        values.update(fields)
        job = NotificationJob(**values)
        async with session_factory() as db:
            db.add(job)
            await db.commit()
        return job

    return _insert


@pytest.fixture
def load_job(session_factory):
    async def _load(job_id: str) -> Optional[NotificationJob]:
        async with session_factory() as db:
            return await db.get(NotificationJob, job_id)

    return _load


@pytest.fixture
def line_gateway():
    """
    Fake LINE push endpoint. Set gateway.responder to a function
    (message_text) -> httpx.Response; every request is recorded.
    """

    class Gateway:
        def __init__(self):
            self.requests = []
            self.responder = lambda text: httpx.Response(200, json={})

        def handler(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            body = json.loads(request.content)
            return self.responder(body["messages"][0]["text"])

        def client(self) -> LinePushClient:
            return LinePushClient(
                channel_access_token="line-token",
                group_id="C-group",
                transport=httpx.MockTransport(self.handler),
            )

    return Gateway()
