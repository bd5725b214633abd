import asyncio
import json
from datetime import datetime
from typing import Optional

from celery import shared_task
from celery.utils.log import get_task_logger
from sqlalchemy.orm import Session

from feedwatch.database import SessionLocal
from feedwatch.models import Engagement, EngagementStatus
from feedwatch.services.ai_service import AIOrchestrator
from feedwatch_worker.celery import enqueue_job
from feedwatch_worker.jobs import JobKind, INSIGHT_GENERATION, RISK_ASSESSMENT

logger = get_task_logger(__name__)


class ProjectNotFoundError(Exception):
    """The target engagement no longer exists. Retrying cannot help."""

    def __init__(self, project_id: int):
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


_orchestrator: Optional[AIOrchestrator] = None


def get_orchestrator() -> AIOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = AIOrchestrator.from_settings()
    return _orchestrator


def run_generation_job(db: Session, kind: JobKind, project_id: int, orchestrator: AIOrchestrator) -> dict:
    """
    Generate content for one project and store it in the column `kind` owns.

    Only kind.result_field and updated_at are written, so an insight job and a
    risk job running for the same project never overwrite each other.
    """
    project = db.query(Engagement).filter(Engagement.id == project_id).first()
    if not project:
        raise ProjectNotFoundError(project_id)

    snapshot = json.dumps(project.to_snapshot(), default=str)
    # End the read transaction before the slow external call
    db.rollback()

    generate = getattr(orchestrator, kind.generator)
    result = asyncio.run(generate(project_id, snapshot))

    now = datetime.utcnow()
    payload = {
        "content": result.content,
        "model": result.model,
        kind.timestamp_key: now.isoformat(),
        "cost_cents": result.cost_cents,
    }

    updated = db.query(Engagement).filter(Engagement.id == project_id).update(
        {kind.result_field: payload, "updated_at": now},
        synchronize_session=False,
    )
    db.commit()

    if not updated:
        # Deleted while the generation was running
        raise ProjectNotFoundError(project_id)

    return payload


def _execute(task, kind: JobKind, project_id: int) -> dict:
    db = SessionLocal()

    try:
        payload = run_generation_job(db, kind, project_id, get_orchestrator())
        logger.info(f"Completed {kind.name} for project {project_id}")
        return payload

    except ProjectNotFoundError as e:
        logger.error(f"{kind.name} failed for project {project_id}: {e}, not retrying")
        raise

    except Exception as e:
        logger.exception(f"Failed {kind.name} for project {project_id}")
        raise task.retry(exc=e, countdown=kind.retry_countdown(task.request.retries))

    finally:
        db.close()


@shared_task(bind=True, name=INSIGHT_GENERATION.task_name, max_retries=INSIGHT_GENERATION.max_retries)
def generate_project_insights(self, project_id: int):
    return _execute(self, INSIGHT_GENERATION, project_id)


@shared_task(bind=True, name=RISK_ASSESSMENT.task_name, max_retries=RISK_ASSESSMENT.max_retries)
def assess_project_risk(self, project_id: int):
    return _execute(self, RISK_ASSESSMENT, project_id)


def queue_for_active_projects(db: Session, kind: JobKind) -> dict:
    """Enqueue one job per active project. A failed enqueue does not stop the scan."""
    projects = db.query(Engagement.id).filter(
        Engagement.status == EngagementStatus.ACTIVE.value
    ).order_by(Engagement.id).all()

    queued = 0
    failed = 0
    for (project_id,) in projects:
        try:
            enqueue_job(kind, project_id)
            queued += 1
        except Exception as e:
            failed += 1
            logger.error(f"Could not enqueue {kind.name} for project {project_id}: {e}")

    logger.info(f"Queued {kind.name} for {queued} projects ({failed} failed)")
    return {"kind": kind.name, "queued": queued, "failed": failed}


@shared_task(name="feedwatch_worker.tasks.ai_jobs.queue_daily_insights")
def queue_daily_insights():
    db = SessionLocal()
    try:
        return queue_for_active_projects(db, INSIGHT_GENERATION)
    finally:
        db.close()


@shared_task(name="feedwatch_worker.tasks.ai_jobs.queue_weekly_risk_assessments")
def queue_weekly_risk_assessments():
    db = SessionLocal()
    try:
        return queue_for_active_projects(db, RISK_ASSESSMENT)
    finally:
        db.close()
