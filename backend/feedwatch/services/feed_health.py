"""
Feed health tracking.

Turns per-attempt outcomes into a health classification per feed:

- consecutive_failures counts the trailing run of failures since the last success
- success_rate_24h / success_rate_7d are recomputed from feed_metrics, never incremented
- healthy / degraded / failing are derived from those rates after every outcome
- disabled is entered on auto-disable (failure streak >= threshold) or manual
  action, and is only left through an explicit status update
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from feedwatch.config import get_settings
from feedwatch.models.feed_health import FeedHealth, HealthStatus
from feedwatch.services.feed_metrics import FeedMetricsStore

logger = logging.getLogger(__name__)

WINDOW_24H = timedelta(hours=24)
WINDOW_7D = timedelta(days=7)


@dataclass(frozen=True)
class HealthThresholds:
    failing_24h: int = 30
    failing_7d: int = 50
    degraded_24h: int = 70
    degraded_7d: int = 80

    @classmethod
    def from_settings(cls, settings=None) -> "HealthThresholds":
        settings = settings or get_settings()
        return cls(
            failing_24h=settings.failing_rate_24h,
            failing_7d=settings.failing_rate_7d,
            degraded_24h=settings.degraded_rate_24h,
            degraded_7d=settings.degraded_rate_7d,
        )


def calculate_success_rate(successes: int, total: int) -> int:
    """Rounded percentage. An empty window counts as 100 (no data is not failure)."""
    if total <= 0:
        return 100
    return int(round(successes / total * 100))


def classify_health(rate_24h: int, rate_7d: int, thresholds: HealthThresholds = HealthThresholds()) -> HealthStatus:
    if rate_24h < thresholds.failing_24h or rate_7d < thresholds.failing_7d:
        return HealthStatus.FAILING
    if rate_24h < thresholds.degraded_24h or rate_7d < thresholds.degraded_7d:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


class FeedHealthService:

    def __init__(
        self,
        db: Session,
        auto_disable_threshold: Optional[int] = None,
        thresholds: Optional[HealthThresholds] = None,
        error_max_length: Optional[int] = None,
    ):
        settings = get_settings()
        self.db = db
        self.metrics = FeedMetricsStore(db)
        self.auto_disable_threshold = (
            auto_disable_threshold if auto_disable_threshold is not None else settings.feed_auto_disable_threshold
        )
        self.thresholds = thresholds or HealthThresholds.from_settings(settings)
        self.error_max_length = error_max_length if error_max_length is not None else settings.feed_error_max_length

    def get(self, feed_key: str) -> Optional[FeedHealth]:
        return self.db.query(FeedHealth).filter(FeedHealth.feed_key == feed_key).first()

    def get_or_create(self, feed_key: str) -> FeedHealth:
        health = self.get(feed_key)
        if health:
            return health

        health = FeedHealth(
            feed_key=feed_key,
            health_status=HealthStatus.HEALTHY,
            consecutive_failures=0,
            updated_at=datetime.utcnow(),
        )
        self.db.add(health)
        try:
            self.db.commit()
        except IntegrityError:
            # Another writer created the row first
            self.db.rollback()
            return self.get(feed_key)
        self.db.refresh(health)
        return health

    def ensure_records_exist(self, feed_keys: Iterable[str]) -> None:
        """Create a healthy row for every key that has none. Safe to repeat."""
        keys = sorted(set(feed_keys))
        if not keys:
            return

        dialect = self.db.get_bind().dialect.name
        rows = [
            {"feed_key": key, "health_status": HealthStatus.HEALTHY, "consecutive_failures": 0,
             "success_rate_24h": 100, "success_rate_7d": 100, "updated_at": datetime.utcnow()}
            for key in keys
        ]

        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            for key in keys:
                self.get_or_create(key)
            return

        stmt = insert(FeedHealth).values(rows).on_conflict_do_nothing(index_elements=["feed_key"])
        self.db.execute(stmt)
        self.db.commit()

    def is_disabled(self, feed_key: str) -> bool:
        health = self.get(feed_key)
        return health is not None and health.is_disabled

    def record_outcome(
        self,
        feed_key: str,
        success: bool,
        error_message: Optional[str] = None,
    ) -> Optional[FeedHealth]:
        """
        Apply one ingestion outcome, then recompute rates and status.

        Database errors are logged and swallowed so a bookkeeping failure
        never fails the ingestion attempt itself.
        """
        try:
            health = self.get_or_create(feed_key)
            now = datetime.utcnow()

            if success:
                health.consecutive_failures = 0
                health.last_successful_fetch = now
                health.last_error = None
                health.last_error_at = None
            else:
                failures = (health.consecutive_failures or 0) + 1
                health.consecutive_failures = failures
                health.last_error = (error_message or "Unknown error")[:self.error_max_length]
                health.last_error_at = now

                if failures >= self.auto_disable_threshold:
                    if health.health_status != HealthStatus.DISABLED:
                        logger.warning(
                            f"Auto-disabling feed {feed_key} after {failures} consecutive failures"
                        )
                    health.health_status = HealthStatus.DISABLED
                    if health.auto_disabled_at is None:
                        health.auto_disabled_at = now
                elif health.health_status is None:
                    health.health_status = HealthStatus.FAILING

            health.updated_at = now
            self.db.commit()

            return self.recalculate_success_rates(feed_key)

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update health for feed {feed_key}: {e}")
            return None

    def recalculate_success_rates(self, feed_key: str) -> Optional[FeedHealth]:
        try:
            health = self.get(feed_key)
            if not health:
                return None

            now = datetime.utcnow()
            rate_24h = calculate_success_rate(*self.metrics.window_counts(feed_key, now - WINDOW_24H))
            rate_7d = calculate_success_rate(*self.metrics.window_counts(feed_key, now - WINDOW_7D))

            health.success_rate_24h = rate_24h
            health.success_rate_7d = rate_7d

            # Disabled is sticky until someone re-enables the feed
            if health.health_status != HealthStatus.DISABLED:
                health.health_status = classify_health(rate_24h, rate_7d, self.thresholds)

            health.updated_at = now
            self.db.commit()
            self.db.refresh(health)
            return health

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to recalculate success rates for feed {feed_key}: {e}")
            return None

    def set_status(self, feed_key: str, status: HealthStatus) -> Optional[FeedHealth]:
        """
        Manual override used by enable/disable actions.

        Only existing feeds are updated; returns None for an unknown key or
        when the write fails.
        """
        try:
            health = self.get(feed_key)
            if not health:
                return None

            now = datetime.utcnow()
            if status == HealthStatus.DISABLED:
                if not health.is_disabled or health.auto_disabled_at is None:
                    health.auto_disabled_at = now
            else:
                health.auto_disabled_at = None

            health.health_status = status
            health.updated_at = now
            self.db.commit()
            self.db.refresh(health)

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to set status for feed {feed_key}: {e}")
            return None

        logger.info(f"Feed {feed_key} status manually set to {status.value}")
        return health

    def get_all(self) -> list[FeedHealth]:
        return self.db.query(FeedHealth).order_by(
            FeedHealth.updated_at.desc(), FeedHealth.id.desc()
        ).all()

    def get_summary(self) -> dict[str, int]:
        summary = {status.value: 0 for status in HealthStatus}
        for health in self.get_all():
            summary[health.health_status.value] += 1
        return summary
