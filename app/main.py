import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from app.core.config import (
    CACHE_CLEANUP_INTERVAL_SECONDS,
    CACHE_DEFAULT_TTL_SECONDS,
    CACHE_MAX_SIZE,
    SSE_QUEUE_SIZE,
)
from app.core.logging import setup_logging
from app.core.init_db import init_db
from app.api.router import api_router
from app.services.cache import ResponseCache, run_periodic_cleanup
from app.services.sse import NotificationBroker

setup_logging()
logger.info("Starting EstateHub backend")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()

    cleanup_task = asyncio.create_task(
        run_periodic_cleanup(app.state.cache, CACHE_CLEANUP_INTERVAL_SECONDS)
    )
    logger.info("Cache cleanup task started")
    try:
        yield
    finally:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass
        logger.info("Cache cleanup task stopped")


app = FastAPI(
    title="EstateHub Backend",
    version="0.1.0",
    lifespan=lifespan,
)

# process-wide collaborators, handed to routes through app.state
app.state.cache = ResponseCache(default_ttl=CACHE_DEFAULT_TTL_SECONDS, max_size=CACHE_MAX_SIZE)
app.state.broker = NotificationBroker(queue_size=SSE_QUEUE_SIZE)

# All API routes (onboarding, notifications, admin)
app.include_router(api_router)


@app.get("/health")
def health():
    logger.debug("Health check hit")
    return {"status": "ok"}
