from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from feedwatch.config import get_settings
from feedwatch.database import get_db
from feedwatch.scheduler import manual_sync_feed
from feedwatch.schemas.feed import FeedHealthResponse, FeedMetricResponse, FeedStatusUpdate, FeedAlertResponse
from feedwatch.services.feed_alerts import FeedAlertService
from feedwatch.services.feed_health import FeedHealthService
from feedwatch.services.feed_metrics import FeedMetricsStore
from feedwatch.services.feeds import FeedIngestionService

router = APIRouter()


@router.get("/health", response_model=list[FeedHealthResponse])
async def list_feed_health(db: Session = Depends(get_db)):
    """All feed health rows, most recently updated first."""
    return FeedHealthService(db).get_all()


@router.get("/health/summary")
async def feed_health_summary(db: Session = Depends(get_db)):
    return FeedHealthService(db).get_summary()


@router.get("/alerts", response_model=list[FeedAlertResponse])
async def feed_alerts(db: Session = Depends(get_db)):
    return [alert.to_dict() for alert in FeedAlertService(db).check_alerts()]


@router.get("/critical")
async def critical_feeds(db: Session = Depends(get_db)):
    return {"feeds": FeedAlertService(db).get_critical_feeds()}


@router.post("/sync")
async def sync_all_feeds(db: Session = Depends(get_db)):
    return await FeedIngestionService(db).sync_all_feeds()


@router.get("/{feed_key}/health", response_model=FeedHealthResponse)
async def get_feed_health(feed_key: str, db: Session = Depends(get_db)):
    health = FeedHealthService(db).get(feed_key)
    if not health:
        raise HTTPException(status_code=404, detail=f"No health record for feed {feed_key}")
    return health


@router.get("/{feed_key}/metrics", response_model=list[FeedMetricResponse])
async def get_feed_metrics(
    feed_key: str,
    since_days: Optional[int] = Query(None, ge=1, le=365),
    db: Session = Depends(get_db),
):
    if feed_key not in get_settings().rss_feeds and not FeedHealthService(db).get(feed_key):
        raise HTTPException(status_code=404, detail=f"Unknown feed {feed_key}")

    since = datetime.utcnow() - timedelta(days=since_days) if since_days else None
    return FeedMetricsStore(db).query(feed_key, since)


@router.put("/{feed_key}/status", response_model=FeedHealthResponse)
async def update_feed_status(feed_key: str, update: FeedStatusUpdate, db: Session = Depends(get_db)):
    """Manually enable or disable a feed."""
    service = FeedHealthService(db)
    if not service.get(feed_key):
        raise HTTPException(status_code=404, detail=f"No health record for feed {feed_key}")

    health = service.set_status(feed_key, update.status)
    if not health:
        raise HTTPException(status_code=500, detail=f"Failed to update status for feed {feed_key}")
    return health


@router.post("/{feed_key}/sync")
async def sync_feed(feed_key: str):
    if feed_key not in get_settings().rss_feeds:
        raise HTTPException(status_code=404, detail=f"Unknown feed {feed_key}")
    return await manual_sync_feed(feed_key)
