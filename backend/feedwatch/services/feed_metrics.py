import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from feedwatch.models.feed_metric import FeedMetric

logger = logging.getLogger(__name__)


class FeedMetricsStore:
    """
    Append-only log of ingestion attempts.

    Recording is a best-effort side channel: a database error is logged and
    rolled back, never raised into the ingestion flow.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        feed_key: str,
        success: bool,
        duration_ms: int = 0,
        articles_fetched: int = 0,
        articles_inserted: int = 0,
        articles_skipped: int = 0,
        error_message: Optional[str] = None,
        error_type: Optional[str] = None,
        fetch_timestamp: Optional[datetime] = None,
    ) -> Optional[FeedMetric]:
        metric = FeedMetric(
            feed_key=feed_key,
            success=success,
            duration_ms=duration_ms,
            articles_fetched=articles_fetched,
            articles_inserted=articles_inserted,
            articles_skipped=articles_skipped,
            error_message=error_message,
            error_type=error_type,
            fetch_timestamp=fetch_timestamp or datetime.utcnow(),
        )
        try:
            self.db.add(metric)
            self.db.commit()
            return metric
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Failed to record metric for feed {feed_key}: {e}")
            return None

    def query(self, feed_key: str, since: Optional[datetime] = None) -> list[FeedMetric]:
        """Metrics for one feed, newest first, optionally bounded by a time floor."""
        query = self.db.query(FeedMetric).filter(FeedMetric.feed_key == feed_key)
        if since is not None:
            query = query.filter(FeedMetric.fetch_timestamp >= since)
        return query.order_by(FeedMetric.fetch_timestamp.desc(), FeedMetric.id.desc()).all()

    def window_counts(self, feed_key: str, since: datetime) -> tuple[int, int]:
        """Return (successes, total) for attempts at or after `since`."""
        rows = self.db.query(FeedMetric.success).filter(
            FeedMetric.feed_key == feed_key,
            FeedMetric.fetch_timestamp >= since,
        ).all()
        successes = sum(1 for (ok,) in rows if ok)
        return successes, len(rows)
