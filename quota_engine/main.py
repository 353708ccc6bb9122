"""
Quota Engine - Main Application Entry Point

FastAPI application hosting the nightly analytics scheduler. On startup
the database is initialized and any days missed while the process was
down are recomputed.
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI

from config import settings
from . import __version__
from .analytics.backfill import get_backfill_manager
from .cache import close_redis
from .database import init_database, close_database, get_database
from .scheduler.jobs import get_scheduler_manager
from .utils.background_tasks import wait_for_background_tasks, pending_background_tasks

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    # Startup
    logger.info(f"Starting {settings.app_name}...")

    if await init_database():
        logger.info("Database initialized")
        try:
            caught_up = await get_backfill_manager().on_server_start()
            if caught_up:
                logger.info(f"Recomputed {len(caught_up)} missed days")
        except Exception as e:
            logger.error(f"Daily analytics catch-up failed: {e}", exc_info=True)
    else:
        logger.warning("Database not available, analytics disabled")

    scheduler = get_scheduler_manager()
    scheduler.start()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    scheduler.stop()
    if pending_background_tasks():
        logger.info(f"Waiting for {pending_background_tasks()} background tasks")
        await wait_for_background_tasks(timeout=30)
    await close_redis()
    await close_database()


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    lifespan=lifespan,
)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": __version__
    }


@app.get("/health")
async def health_check():
    """Detailed health check endpoint."""
    db_health = {"status": "not_configured"}
    try:
        db_health = await get_database().health_check()
    except Exception as e:
        db_health = {"status": "error", "error": str(e)}

    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "services": {
            "database": db_health.get("status", "unknown"),
            "redis": bool(settings.redis_url),
            "cache_backend": settings.analytics_cache_backend,
        },
        "scheduler": get_scheduler_manager().get_job_status(),
    }
