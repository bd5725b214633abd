from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from feedwatch.models.feed_health import HealthStatus


class FeedHealthResponse(BaseModel):
    feed_key: str
    health_status: HealthStatus
    consecutive_failures: int
    last_successful_fetch: Optional[datetime] = None
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None
    success_rate_24h: int
    success_rate_7d: int
    auto_disabled_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FeedMetricResponse(BaseModel):
    id: int
    feed_key: str
    success: bool
    duration_ms: int
    articles_fetched: int
    articles_inserted: int
    articles_skipped: int
    error_message: Optional[str] = None
    error_type: Optional[str] = None
    fetch_timestamp: datetime

    class Config:
        from_attributes = True


class FeedStatusUpdate(BaseModel):
    status: HealthStatus


class FeedAlertResponse(BaseModel):
    feed_key: str
    type: str
    message: str
    consecutive_failures: int
