from fastapi import APIRouter

from notify_worker.api.v1.endpoints import worker

router = APIRouter()

router.include_router(worker.router, tags=["worker"])
