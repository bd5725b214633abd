import logging
from dataclasses import dataclass, asdict
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from feedwatch.config import get_settings
from feedwatch.models.feed_health import FeedHealth, HealthStatus

logger = logging.getLogger(__name__)


@dataclass
class FeedAlert:
    feed_key: str
    type: str  # "disabled" or "consecutive_failures"
    message: str
    consecutive_failures: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class FeedAlertService:
    """Read-only scan of feed health rows that reports what needs attention."""

    def __init__(self, db: Session, alert_threshold: Optional[int] = None):
        self.db = db
        self.alert_threshold = alert_threshold if alert_threshold is not None else get_settings().feed_alert_threshold

    def check_alerts(self) -> list[FeedAlert]:
        alerts: list[FeedAlert] = []

        try:
            rows = self.db.query(FeedHealth).order_by(FeedHealth.updated_at.desc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Alert check could not read feed health: {e}")
            return alerts

        for row in rows:
            failures = row.consecutive_failures or 0

            if row.health_status == HealthStatus.DISABLED:
                message = f"Feed {row.feed_key} is DISABLED"
                if row.auto_disabled_at:
                    message += f" (auto-disabled at {row.auto_disabled_at.isoformat()})"
                alerts.append(FeedAlert(row.feed_key, "disabled", message, failures))
                logger.warning(f"[ALERT] {message}")
                continue

            if failures >= self.alert_threshold:
                message = (
                    f"Feed {row.feed_key} has {failures} consecutive failures. "
                    f"Last error: {row.last_error or 'n/a'}"
                )
                alerts.append(FeedAlert(row.feed_key, "consecutive_failures", message, failures))
                logger.warning(f"[ALERT] {message}")

        return alerts

    def get_critical_feeds(self) -> list[str]:
        """Feeds currently failing. Disabled feeds are excluded, they are already actioned."""
        try:
            rows = self.db.query(FeedHealth.feed_key).filter(
                FeedHealth.health_status == HealthStatus.FAILING
            ).order_by(FeedHealth.feed_key).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not read critical feeds: {e}")
            return []
        return [key for (key,) in rows]
