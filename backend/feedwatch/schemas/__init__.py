from feedwatch.schemas.feed import FeedHealthResponse, FeedMetricResponse, FeedStatusUpdate, FeedAlertResponse
from feedwatch.schemas.job import JobQueuedResponse, JobKindResponse

__all__ = [
    "FeedHealthResponse",
    "FeedMetricResponse",
    "FeedStatusUpdate",
    "FeedAlertResponse",
    "JobQueuedResponse",
    "JobKindResponse",
]
