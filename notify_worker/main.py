from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text

from notify_worker.api.v1 import api_v1_router
from notify_worker.core import settings
from notify_worker.core.logger import info
from notify_worker.core.setup_logger import api_logger
from notify_worker.db import get_session_factory, close_database


@asynccontextmanager
async def lifespan(app: FastAPI):
    info(api_logger, "FastAPI application starting...")
    yield
    await close_database()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
)

# Worker routes answer preflights and set CORS headers themselves
app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.get("/")
def health_check():
    return {"status": "ok", "message": "Application running"}


@app.get("/db-health")
async def db_health_check():
    try:
        async with get_session_factory()() as db:
            result = await db.execute(text('SELECT 1'))
            _ = result.scalar()
        return {"status": "ok", "message": "Database running"}
    except Exception as e:
        return {"status": "error", "message": str(e)}
