import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from feedwatch.database import get_db
from feedwatch.models import Engagement
from feedwatch.schemas.job import JobQueuedResponse, JobKindResponse
from feedwatch_worker.celery import enqueue_job
from feedwatch_worker.jobs import JOB_KINDS, JobKind, INSIGHT_GENERATION, RISK_ASSESSMENT

logger = logging.getLogger(__name__)
router = APIRouter()


def _queue_for_project(db: Session, kind: JobKind, project_id: int) -> dict:
    exists = db.query(Engagement.id).filter(Engagement.id == project_id).first()
    if not exists:
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")

    try:
        result = enqueue_job(kind, project_id)
    except Exception as e:
        logger.error(f"Failed to enqueue {kind.name} for project {project_id}: {e}")
        raise HTTPException(status_code=503, detail="Job queue unavailable")

    return {"kind": kind.name, "queue": kind.queue, "project_id": project_id, "task_id": result.id}


@router.post("/projects/{project_id}/insights", response_model=JobQueuedResponse, status_code=202)
async def queue_project_insights(project_id: int, db: Session = Depends(get_db)):
    return _queue_for_project(db, INSIGHT_GENERATION, project_id)


@router.post("/projects/{project_id}/risk-assessment", response_model=JobQueuedResponse, status_code=202)
async def queue_risk_assessment(project_id: int, db: Session = Depends(get_db)):
    return _queue_for_project(db, RISK_ASSESSMENT, project_id)


@router.get("/jobs/kinds", response_model=list[JobKindResponse])
async def list_job_kinds():
    return [
        {
            "name": kind.name,
            "queue": kind.queue,
            "concurrency": kind.concurrency,
            "max_retries": kind.max_retries,
            "retry_backoff": kind.retry_backoff,
        }
        for kind in JOB_KINDS.values()
    ]
