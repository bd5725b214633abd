from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging

from feedwatch.api import health, feeds, jobs
from feedwatch.scheduler import start_scheduler, stop_scheduler
from feedwatch.config import get_settings
from feedwatch.database import SessionLocal, init_db, dispose_engine
from feedwatch.services.feed_health import FeedHealthService
from feedwatch_worker.celery import close_connections

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _ensure_feed_records():
    db = SessionLocal()
    try:
        FeedHealthService(db).ensure_records_exist(settings.rss_feeds.keys())
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Feedwatch")

    if settings.database_url.startswith("sqlite"):
        logger.info("SQLite detected - creating tables if needed")
        init_db()

    try:
        _ensure_feed_records()
        if settings.scheduler_enabled:
            start_scheduler()
            logger.info("APScheduler started")
    except Exception as e:
        logger.error(f"Startup failed: {e}")

    yield

    logger.info("Shutting down Feedwatch")

    try:
        stop_scheduler()
        close_connections()
        dispose_engine()
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


app = FastAPI(
    title="Feedwatch",
    description="Feed ingestion health tracking and background AI job control",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(health.router, tags=["health"])
app.include_router(feeds.router, prefix="/api/feeds", tags=["feeds"])
app.include_router(jobs.router, prefix="/api", tags=["jobs"])


@app.get("/ping")
async def ping():
    return {"status": "ok"}
