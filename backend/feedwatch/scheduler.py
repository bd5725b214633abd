"""
APScheduler setup for feed ingestion inside the API process.

AI generation jobs are scheduled by Celery beat (see feedwatch_worker.celery);
this scheduler only runs the RSS sync and the periodic alert scan.
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.jobstores.memory import MemoryJobStore

from feedwatch.database import SessionLocal
from feedwatch.services.feed_alerts import FeedAlertService
from feedwatch.services.feeds import FeedIngestionService
from feedwatch.config import get_settings

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None

settings = get_settings()


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the global scheduler instance."""
    global scheduler
    if scheduler is None:
        tz = settings.scheduler_timezone
        logger.info(f"Scheduler using timezone: {tz}")

        scheduler = AsyncIOScheduler(
            jobstores={'default': MemoryJobStore()},
            timezone=tz
        )

        _setup_scheduled_jobs()

    return scheduler


def _setup_scheduled_jobs():
    scheduler.add_job(
        sync_all_feeds_job,
        trigger=CronTrigger(hour=settings.rss_sync_hour, minute=0),
        id='daily_rss_sync',
        name=f'Daily RSS Sync ({settings.rss_sync_hour:02d}:00)',
        replace_existing=True,
        max_instances=1,
    )

    scheduler.add_job(
        check_feed_alerts_job,
        trigger=IntervalTrigger(hours=1),
        id='feed_alert_check',
        name='Feed Alert Check',
        replace_existing=True,
        max_instances=1,
    )

    logger.info("Scheduled jobs configured:")
    logger.info(f"  - RSS sync: {settings.rss_sync_hour:02d}:00 daily")
    logger.info("  - Feed alert check: Every hour")


async def sync_all_feeds_job():
    logger.info("Starting scheduled RSS sync")

    db = SessionLocal()
    try:
        results = await FeedIngestionService(db).sync_all_feeds()
        succeeded = sum(1 for r in results.values() if r["success"])
        disabled = sum(1 for r in results.values() if r.get("skipped_disabled"))
        logger.info(
            f"RSS sync complete: {succeeded} succeeded, {disabled} disabled, "
            f"{len(results) - succeeded - disabled} failed"
        )
    except Exception as e:
        logger.error(f"Error in scheduled RSS sync: {e}")
    finally:
        db.close()


async def check_feed_alerts_job():
    logger.debug("Running feed alert check")

    db = SessionLocal()
    try:
        alerts = FeedAlertService(db).check_alerts()
        if alerts:
            logger.info(f"Feed alert check raised {len(alerts)} alert(s)")
    except Exception as e:
        logger.error(f"Error in feed alert check: {e}")
    finally:
        db.close()


async def manual_sync_feed(feed_key: str) -> dict:
    """Sync one feed now, even if it is disabled."""
    logger.info(f"Manual sync triggered for feed {feed_key}")

    db = SessionLocal()
    try:
        result = await FeedIngestionService(db).sync_feed(feed_key, force=True)
        return result.to_dict()
    finally:
        db.close()


def start_scheduler():
    """Start the scheduler (call this from FastAPI startup)."""
    scheduler_instance = get_scheduler()

    if not scheduler_instance.running:
        scheduler_instance.start()
        logger.info("APScheduler started successfully")

        for job in scheduler_instance.get_jobs():
            logger.info(f"Next '{job.name}': {job.next_run_time}")
    else:
        logger.warning("Scheduler already running")


def stop_scheduler():
    """Stop the scheduler (call this from FastAPI shutdown)."""
    global scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler stopped")
        scheduler = None


def get_scheduler_status() -> dict:
    if scheduler is None or not scheduler.running:
        return {
            "running": False,
            "jobs": [],
            "next_run": None
        }

    jobs = []
    next_run = None

    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
        })
        if job.next_run_time and (next_run is None or job.next_run_time < next_run):
            next_run = job.next_run_time

    return {
        "running": True,
        "jobs": jobs,
        "next_run": next_run.isoformat() if next_run else None
    }
