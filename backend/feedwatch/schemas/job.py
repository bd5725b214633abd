from pydantic import BaseModel


class JobQueuedResponse(BaseModel):
    kind: str
    queue: str
    project_id: int
    task_id: str


class JobKindResponse(BaseModel):
    name: str
    queue: str
    concurrency: int
    max_retries: int
    retry_backoff: int
