"""Append-only log of feed ingestion attempts."""
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, Index
from feedwatch.database import Base


class FeedMetric(Base):
    """One row per ingestion attempt. Never updated or deleted here."""
    __tablename__ = "feed_metrics"

    id = Column(Integer, primary_key=True, index=True)
    feed_key = Column(String(128), nullable=False, index=True)
    success = Column(Boolean, nullable=False)

    duration_ms = Column(Integer, default=0, nullable=False)
    articles_fetched = Column(Integer, default=0, nullable=False)
    articles_inserted = Column(Integer, default=0, nullable=False)
    articles_skipped = Column(Integer, default=0, nullable=False)

    error_message = Column(Text, nullable=True)
    error_type = Column(String(50), nullable=True)  # timeout, http_503, network, parse, ...

    fetch_timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_feed_metrics_feed_key_fetch_timestamp", "feed_key", "fetch_timestamp"),
    )
