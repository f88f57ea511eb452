"""
Invocation Endpoint
Externally triggered (scheduler, cron, manual) entry point that runs one batch
"""
import hmac
import json
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response

from notify_worker.core.clock import utc_now
from notify_worker.core.config import Settings, get_settings
from notify_worker.core.errors import ConfigurationError, JobStoreError
from notify_worker.core.setup_logger import api_logger
from notify_worker.core.logger import info, warning, error
from notify_worker.schemas.notification_schemas import parse_batch_size
from notify_worker.services.dispatcher import BatchDispatcher, build_dispatcher
from notify_worker.services.job_store import JobStore, build_job_store

router = APIRouter()

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
SECRET_HEADER = "x-worker-secret"


def get_dispatcher_factory() -> Callable[[Settings], BatchDispatcher]:
    return build_dispatcher


def get_job_store_factory() -> Callable[[Settings], JobStore]:
    return build_job_store


def cors_headers(settings: Settings) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": ", ".join(settings.CORS_ORIGINS),
        "Access-Control-Allow-Headers": ", ".join(settings.CORS_HEADERS),
        "Access-Control-Allow-Methods": ", ".join(settings.CORS_METHODS),
    }


def json_response(status_code: int, body: Any, settings: Settings) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=cors_headers(settings))


def is_authorized(request: Request, settings: Settings) -> bool:
    """No secret configured means the endpoint is open."""
    secret = settings.worker_secret
    if not secret:
        return True
    provided = request.headers.get(SECRET_HEADER) or ""
    return hmac.compare_digest(provided.encode("utf-8"), secret.encode("utf-8"))


async def read_json_body(request: Request) -> Optional[Any]:
    # Empty or malformed bodies are valid and mean "use defaults"
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None


@router.api_route("/line-group-notify", methods=ALL_METHODS)
async def line_group_notify(
        request: Request,
        settings: Settings = Depends(get_settings),
        dispatcher_factory: Callable[[Settings], BatchDispatcher] = Depends(get_dispatcher_factory),
):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=cors_headers(settings))

    if request.method != "POST":
        return json_response(405, {"error": "Method Not Allowed"}, settings)

    if not is_authorized(request, settings):
        warning(api_logger, "Rejected worker request with bad secret", context={
            "client": request.client.host if request.client else None,
        })
        return json_response(401, {"error": "Unauthorized worker request"}, settings)

    try:
        dispatcher = dispatcher_factory(settings)
    except ConfigurationError as e:
        error(api_logger, "Worker configuration missing", context={"error": str(e)})
        return json_response(500, {"error": str(e)}, settings)

    batch_size = parse_batch_size(await read_json_body(request), settings.DEFAULT_BATCH_SIZE)

    try:
        summary = await dispatcher.run(batch_size)
    except JobStoreError as e:
        error(api_logger, "Candidate fetch failed", context={"error": str(e)})
        return json_response(500, {"error": str(e)}, settings)

    info(api_logger, "Worker invocation finished", context={
        "batch_size": batch_size,
        **summary.to_response(),
    })
    return json_response(200, summary.to_response(), settings)


@router.post("/line-group-notify/requeue-stale")
async def requeue_stale_jobs(
        request: Request,
        older_than_minutes: Optional[int] = Query(None, ge=1, description="Minutes after which processing jobs are considered stale"),
        settings: Settings = Depends(get_settings),
        store_factory: Callable[[Settings], JobStore] = Depends(get_job_store_factory),
):
    """
    Admin endpoint: put jobs stuck in processing back to pending.

    Recovers jobs whose worker died (or failed to record the outcome) after
    claiming them.
    """
    if not is_authorized(request, settings):
        return json_response(401, {"error": "Unauthorized worker request"}, settings)

    minutes = older_than_minutes or settings.STALE_PROCESSING_MINUTES

    try:
        store = store_factory(settings)
        now = utc_now()
        count = await store.requeue_stale(
            settings.NOTIFY_CHANNEL,
            stale_before=now - timedelta(minutes=minutes),
            now=now,
        )
    except (ConfigurationError, JobStoreError) as e:
        error(api_logger, "Stale requeue failed", context={"error": str(e)})
        return json_response(500, {"error": str(e)}, settings)

    info(api_logger, "Requeued stale jobs", context={
        "requeued": count,
        "older_than_minutes": minutes,
    })
    return json_response(200, {"requeued": count}, settings)
