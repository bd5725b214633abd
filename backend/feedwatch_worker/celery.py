import logging

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_shutdown
from feedwatch.config import get_settings
from feedwatch_worker.jobs import JOB_KINDS, JobKind

logger = logging.getLogger(__name__)

settings = get_settings()

app = Celery(
    "feedwatch",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["feedwatch_worker.tasks.ai_jobs"]
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.scheduler_timezone,
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_routes={kind.task_name: {"queue": kind.queue} for kind in JOB_KINDS.values()},
)

app.conf.beat_schedule = {
    "daily-insights": {
        "task": "feedwatch_worker.tasks.ai_jobs.queue_daily_insights",
        "schedule": crontab(hour=settings.insights_cron_hour, minute=0),
    },
    "weekly-risk-assessment": {
        "task": "feedwatch_worker.tasks.ai_jobs.queue_weekly_risk_assessments",
        "schedule": crontab(
            hour=settings.risk_cron_hour,
            minute=0,
            day_of_week=settings.risk_cron_day_of_week,
        ),
    },
}


def enqueue_job(kind: JobKind, target_id: int):
    """Publish one job. Delivery is at-least-once; duplicates are tolerated."""
    result = app.send_task(kind.task_name, args=[target_id], queue=kind.queue)
    logger.info(f"Enqueued {kind.name} for project {target_id} ({result.id})")
    return result


def close_connections():
    """Release broker connections held by this process."""
    app.close()
    logger.info("Celery producer connections closed")


@worker_shutdown.connect
def _on_worker_shutdown(**kwargs):
    from feedwatch.database import dispose_engine

    dispose_engine()
    close_connections()
