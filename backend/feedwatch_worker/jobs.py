"""
Background job kinds.

Each kind gets its own queue, worker pool and concurrency ceiling so a slow
kind cannot starve another. Adding a kind means adding a row here plus the
task it names.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class JobKind:
    name: str
    queue: str
    task_name: str
    concurrency: int
    result_field: str  # engagement column this kind owns
    timestamp_key: str
    generator: str  # AIOrchestrator method
    max_retries: int = 3
    retry_backoff: int = 2  # seconds, doubled per retry

    def retry_countdown(self, retries: int) -> int:
        return self.retry_backoff * (2 ** retries)


INSIGHT_GENERATION = JobKind(
    name="insight-generation",
    queue="ai-insights",
    task_name="feedwatch_worker.tasks.ai_jobs.generate_project_insights",
    concurrency=5,
    result_field="ai_insights",
    timestamp_key="generated_at",
    generator="generate_project_insights",
)

RISK_ASSESSMENT = JobKind(
    name="risk-assessment",
    queue="risk-assessment",
    task_name="feedwatch_worker.tasks.ai_jobs.assess_project_risk",
    concurrency=3,
    result_field="risk_assessment",
    timestamp_key="assessed_at",
    generator="assess_project_risk",
)

JOB_KINDS: dict[str, JobKind] = {
    INSIGHT_GENERATION.name: INSIGHT_GENERATION,
    RISK_ASSESSMENT.name: RISK_ASSESSMENT,
}


def get_job_kind(name: str) -> JobKind:
    try:
        return JOB_KINDS[name]
    except KeyError:
        raise ValueError(f"Unknown job kind: {name}") from None


def get_job_kind_for_queue(queue: str) -> JobKind:
    for kind in JOB_KINDS.values():
        if kind.queue == queue:
            return kind
    raise ValueError(f"Unknown queue: {queue}")
