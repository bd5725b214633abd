import logging
import time
from dataclasses import dataclass, asdict
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from feedwatch.config import get_settings
from feedwatch.models.news_article import NewsArticle
from feedwatch.services.feed_health import FeedHealthService
from feedwatch.services.feed_metrics import FeedMetricsStore
from feedwatch.services.feeds.fetcher import FeedFetcher, FeedParseError, ParsedArticle

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    feed_key: str
    success: bool
    skipped_disabled: bool = False
    fetched: int = 0
    inserted: int = 0
    skipped: int = 0
    duration_ms: int = 0
    error: Optional[str] = None
    error_type: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def classify_error(error: Exception) -> str:
    if isinstance(error, httpx.TimeoutException):
        return "timeout"
    if isinstance(error, httpx.HTTPStatusError):
        return f"http_{error.response.status_code}"
    if isinstance(error, httpx.RequestError):
        return "network"
    if isinstance(error, FeedParseError):
        return "parse"
    return type(error).__name__


class FeedIngestionService:
    """
    Runs ingestion attempts and feeds their outcomes into health tracking.

    Each attempt writes one FeedMetric first, then updates FeedHealth so the
    recomputed success rates include it.
    """

    def __init__(self, db: Session, fetcher: Optional[FeedFetcher] = None, feeds: Optional[dict[str, str]] = None):
        self.db = db
        self.fetcher = fetcher or FeedFetcher()
        self.feeds = feeds if feeds is not None else get_settings().rss_feeds
        self.health = FeedHealthService(db)
        self.metrics = FeedMetricsStore(db)

    def get_feed_keys(self) -> list[str]:
        return list(self.feeds.keys())

    async def sync_all_feeds(self) -> dict[str, dict]:
        self.health.ensure_records_exist(self.get_feed_keys())

        results = {}
        for feed_key in self.get_feed_keys():
            try:
                result = await self.sync_feed(feed_key)
            except Exception as e:
                logger.error(f"Failed to ingest {feed_key}: {e}")
                result = IngestResult(feed_key=feed_key, success=False, error=str(e))
            results[feed_key] = result.to_dict()
        return results

    async def sync_feed(self, feed_key: str, force: bool = False) -> IngestResult:
        feed_url = self.feeds.get(feed_key)
        if not feed_url:
            raise ValueError(f"Unknown feed: {feed_key}")

        if not force and self.health.is_disabled(feed_key):
            logger.info(f"Skipping disabled feed {feed_key}")
            return IngestResult(feed_key=feed_key, success=False, skipped_disabled=True)

        started = time.monotonic()
        try:
            fetched = await self.fetcher.fetch(feed_key, feed_url)
            inserted, skipped = self._store_articles(feed_key, fetched.articles, fetched.title)
        except Exception as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            error_type = classify_error(e)
            logger.error(f"Ingestion of {feed_key} failed ({error_type}): {e}")

            self.metrics.record(
                feed_key=feed_key,
                success=False,
                duration_ms=duration_ms,
                error_message=str(e),
                error_type=error_type,
            )
            self.health.record_outcome(feed_key, success=False, error_message=str(e))
            return IngestResult(
                feed_key=feed_key,
                success=False,
                duration_ms=duration_ms,
                error=str(e),
                error_type=error_type,
            )

        duration_ms = int((time.monotonic() - started) * 1000)
        self.metrics.record(
            feed_key=feed_key,
            success=True,
            duration_ms=duration_ms,
            articles_fetched=len(fetched.articles),
            articles_inserted=inserted,
            articles_skipped=skipped,
        )
        self.health.record_outcome(feed_key, success=True)

        logger.info(f"Synced {feed_key}: {inserted} inserted, {skipped} skipped in {duration_ms}ms")
        return IngestResult(
            feed_key=feed_key,
            success=True,
            fetched=len(fetched.articles),
            inserted=inserted,
            skipped=skipped,
            duration_ms=duration_ms,
        )

    def _store_articles(self, feed_key: str, articles: list[ParsedArticle], feed_title: Optional[str]) -> tuple[int, int]:
        """
        Insert new articles one at a time. An article the database rejects is
        logged and counted as skipped; it does not fail the rest of the batch.
        """
        inserted = 0
        skipped = 0
        seen_links = set()

        for parsed in articles:
            if parsed.link in seen_links:
                skipped += 1
                continue
            seen_links.add(parsed.link)

            try:
                existing = self.db.query(NewsArticle.id).filter(NewsArticle.link == parsed.link).first()
                if existing:
                    skipped += 1
                    continue

                self.db.add(NewsArticle(
                    source=feed_key,
                    guid=parsed.guid,
                    link=parsed.link,
                    title=parsed.title,
                    description=parsed.description,
                    content=parsed.content,
                    author=parsed.author,
                    categories=parsed.categories,
                    image_url=parsed.image_url,
                    thumbnail_url=parsed.thumbnail_url,
                    feed_metadata={"feed_title": feed_title},
                    published_at=parsed.published_at,
                ))
                self.db.commit()
                inserted += 1
            except SQLAlchemyError as e:
                self.db.rollback()
                skipped += 1
                logger.warning(f"Could not store article {parsed.link} from {feed_key}: {e}")

        return inserted, skipped
