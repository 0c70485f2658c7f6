# main.py
"""
Application entrypoint. Includes routers and starts the matching poll worker.
"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventlink.api.routers import admin, groups, matching, profiles
from eventlink.config.settings import settings
from eventlink.infrastructure.db.session import SessionLocal
from eventlink.services.matching_service import poll_worker

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    poll_task = None
    if settings.ENABLE_POLL_WORKER:
        poll_task = asyncio.create_task(
            poll_worker(SessionLocal, poll_interval=settings.POLL_INTERVAL_SECONDS)
        )
        logger.info("Matching poll worker started")
    try:
        yield
    finally:
        if poll_task:
            poll_task.cancel()
            try:
                await poll_task
            except asyncio.CancelledError:
                pass
            logger.info("Matching poll worker stopped")


app = FastAPI(title="EventLink Matching Backend", lifespan=lifespan)

# Basic CORS (adjust origins in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# include routers
app.include_router(profiles.router, prefix="/api/v1/profiles", tags=["profiles"])
app.include_router(groups.router, prefix="/api/v1/groups", tags=["groups"])
app.include_router(matching.router, prefix="/api/v1/matching", tags=["matching"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["admin"])


@app.get("/")
async def index():
    """Health / basic info endpoint."""
    return {"status": "ok", "service": "eventlink-matching", "env": settings.ENV}
