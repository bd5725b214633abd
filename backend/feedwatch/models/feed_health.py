from sqlalchemy import Column, Integer, String, DateTime, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from feedwatch.database import Base
import enum


class HealthStatus(str, enum.Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILING = "failing"
    DISABLED = "disabled"


class FeedHealth(Base):
    """
    Aggregate health per feed key.

    consecutive_failures resets on any success. health_status is recomputed
    from feed_metrics after every outcome, except that DISABLED only changes
    through an explicit status update.
    """
    __tablename__ = "feed_health"

    id = Column(Integer, primary_key=True, index=True)
    feed_key = Column(String(128), unique=True, nullable=False, index=True)

    health_status = Column(
        SQLEnum(HealthStatus, values_callable=lambda e: [m.value for m in e], name="healthstatus"),
        default=HealthStatus.HEALTHY,
        nullable=False,
    )
    consecutive_failures = Column(Integer, default=0, nullable=False)

    last_successful_fetch = Column(DateTime, nullable=True)
    last_error = Column(Text, nullable=True)
    last_error_at = Column(DateTime, nullable=True)

    # Integer percentages, 0-100
    success_rate_24h = Column(Integer, default=100, nullable=False)
    success_rate_7d = Column(Integer, default=100, nullable=False)

    auto_disabled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def is_disabled(self) -> bool:
        return self.health_status == HealthStatus.DISABLED

    def __repr__(self) -> str:
        return f"<FeedHealth {self.feed_key}: {self.health_status}, {self.consecutive_failures} failures>"
