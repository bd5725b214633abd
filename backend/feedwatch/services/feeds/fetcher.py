from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import asyncio
import logging

import feedparser
import httpx

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAY = 2.0
RETRYABLE_STATUS = (429, 502, 503, 504)


class FeedParseError(Exception):
    """The response body could not be read as a feed."""


@dataclass
class ParsedArticle:
    link: str
    title: str
    guid: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    author: Optional[str] = None
    categories: list[str] = field(default_factory=list)
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    published_at: Optional[datetime] = None


@dataclass
class FetchedFeed:
    title: Optional[str]
    description: Optional[str]
    articles: list[ParsedArticle]


class FeedFetcher:

    def __init__(self, timeout: float = 30.0, retry_delay: float = RETRY_DELAY, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.retry_delay = retry_delay
        self.transport = transport

    async def fetch(self, feed_key: str, feed_url: str) -> FetchedFeed:
        """
        Fetch and parse one feed. Timeouts and throttling responses are
        retried up to MAX_RETRIES times; anything else is raised at once.
        """
        last_error = None

        for attempt in range(MAX_RETRIES):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                    response = await client.get(
                        feed_url,
                        headers={"User-Agent": "Feedwatch/1.0 (Feed Ingestion)"},
                        follow_redirects=True,
                    )
                    response.raise_for_status()

                return self.parse(feed_key, response.text)

            except httpx.TimeoutException as e:
                last_error = e
                logger.warning(f"Timeout fetching {feed_key} (attempt {attempt + 1}/{MAX_RETRIES})")
                if attempt < MAX_RETRIES - 1:
                    await asyncio.sleep(self.retry_delay * (attempt + 1))
            except httpx.HTTPStatusError as e:
                if e.response.status_code in RETRYABLE_STATUS:
                    last_error = e
                    logger.warning(f"Retryable HTTP {e.response.status_code} for {feed_key}")
                    if attempt < MAX_RETRIES - 1:
                        await asyncio.sleep(self.retry_delay * (attempt + 1))
                else:
                    logger.error(f"HTTP {e.response.status_code} fetching {feed_key}")
                    raise

        logger.error(f"All {MAX_RETRIES} retries failed for {feed_key}")
        raise last_error

    def parse(self, feed_key: str, body: str) -> FetchedFeed:
        feed = feedparser.parse(body)

        if feed.bozo and not feed.entries:
            raise FeedParseError(f"Unreadable feed {feed_key}: {feed.bozo_exception}")
        if feed.bozo:
            logger.warning(f"Feed parse warning for {feed_key}: {feed.bozo_exception}")

        articles = []
        for entry in feed.entries:
            link = entry.get("link")
            if not link:
                logger.debug(f"Skipping entry without link in {feed_key}")
                continue
            articles.append(self._parse_entry(entry))

        return FetchedFeed(
            title=feed.feed.get("title"),
            description=feed.feed.get("description"),
            articles=articles,
        )

    def _parse_entry(self, entry) -> ParsedArticle:
        summary = entry.get("summary")
        return ParsedArticle(
            link=entry.get("link"),
            title=entry.get("title") or "Untitled",
            guid=entry.get("id") or entry.get("link"),
            description=summary,
            content=self._get_content(entry) or summary,
            author=entry.get("author"),
            categories=[t.get("term") for t in entry.get("tags", []) if t.get("term")],
            image_url=self._get_image_url(entry),
            thumbnail_url=self._get_thumbnail_url(entry),
            published_at=self._parse_date(entry),
        )

    def _get_content(self, entry) -> Optional[str]:
        content = entry.get("content")
        if content:
            return content[0].get("value")
        return None

    def _get_image_url(self, entry) -> Optional[str]:
        for media in entry.get("media_content", []):
            if media.get("url"):
                return media["url"]
        for enclosure in entry.get("enclosures", []):
            if enclosure.get("href"):
                return enclosure["href"]
        return None

    def _get_thumbnail_url(self, entry) -> Optional[str]:
        for thumb in entry.get("media_thumbnail", []):
            if thumb.get("url"):
                return thumb["url"]
        return None

    def _parse_date(self, entry) -> Optional[datetime]:
        parsed = entry.get("published_parsed") or entry.get("updated_parsed")
        if parsed:
            try:
                return datetime(*parsed[:6])
            except (ValueError, TypeError):
                pass
        return None
