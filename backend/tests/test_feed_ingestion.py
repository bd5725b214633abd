"""Tests for feed fetching, article storage and health bookkeeping per attempt."""
import httpx
import pytest

from feedwatch.models.feed_health import HealthStatus
from feedwatch.models.feed_metric import FeedMetric
from feedwatch.models.news_article import NewsArticle
from feedwatch.services.feed_health import FeedHealthService
from feedwatch.services.feeds import (
    FeedFetcher,
    FeedIngestionService,
    FeedParseError,
    FetchedFeed,
    ParsedArticle,
    classify_error,
)

FEED_URL = "https://feeds.example.com/tech.xml"

SAMPLE_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Tech Briefing</title>
    <description>Daily technology news</description>
    <item>
      <title>Kubernetes 2.0 announced</title>
      <link>https://news.example.com/k8s-2</link>
      <guid>k8s-2</guid>
      <description>The next major release.</description>
      <category>cloud</category>
      <category>containers</category>
      <pubDate>Mon, 05 Oct 2026 08:00:00 GMT</pubDate>
      <media:content url="https://img.example.com/k8s.png" medium="image" />
      <media:thumbnail url="https://img.example.com/k8s-thumb.png" />
    </item>
    <item>
      <title>Postgres tuning tips</title>
      <link>https://news.example.com/pg-tuning</link>
      <enclosure url="https://img.example.com/pg.jpg" type="image/jpeg" length="1000" />
    </item>
  </channel>
</rss>
"""


class FakeFetcher:
    def __init__(self, articles=None, error=None):
        self.articles = articles or []
        self.error = error
        self.calls = 0

    async def fetch(self, feed_key, feed_url):
        self.calls += 1
        if self.error:
            raise self.error
        return FetchedFeed(title="Tech Briefing", description=None, articles=list(self.articles))


def _articles(*links):
    return [ParsedArticle(link=link, title=f"Article {link}") for link in links]


class TestFeedFetcherParse:
    def test_parses_entries(self):
        feed = FeedFetcher().parse("tech", SAMPLE_RSS)

        assert feed.title == "Tech Briefing"
        assert len(feed.articles) == 2

        first = feed.articles[0]
        assert first.link == "https://news.example.com/k8s-2"
        assert first.guid == "k8s-2"
        assert first.categories == ["cloud", "containers"]
        assert first.image_url == "https://img.example.com/k8s.png"
        assert first.thumbnail_url == "https://img.example.com/k8s-thumb.png"
        assert first.published_at.year == 2026

    def test_enclosure_used_as_image(self):
        feed = FeedFetcher().parse("tech", SAMPLE_RSS)
        second = feed.articles[1]
        assert second.image_url == "https://img.example.com/pg.jpg"
        assert second.guid == "https://news.example.com/pg-tuning"

    def test_unreadable_body_raises(self):
        with pytest.raises(FeedParseError):
            FeedFetcher().parse("tech", "this is not a feed <<<")


class TestFeedFetcherFetch:
    async def test_fetch_success(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=SAMPLE_RSS))
        feed = await FeedFetcher(transport=transport).fetch("tech", FEED_URL)
        assert len(feed.articles) == 2

    async def test_non_retryable_status_raises_immediately(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        with pytest.raises(httpx.HTTPStatusError):
            await FeedFetcher(transport=httpx.MockTransport(handler)).fetch("tech", FEED_URL)
        assert len(calls) == 1

    async def test_retryable_status_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        fetcher = FeedFetcher(retry_delay=0, transport=httpx.MockTransport(handler))
        with pytest.raises(httpx.HTTPStatusError):
            await fetcher.fetch("tech", FEED_URL)
        assert len(calls) == 3

    async def test_recovers_after_retry(self):
        responses = [httpx.Response(503), httpx.Response(200, text=SAMPLE_RSS)]

        fetcher = FeedFetcher(retry_delay=0, transport=httpx.MockTransport(lambda request: responses.pop(0)))
        feed = await fetcher.fetch("tech", FEED_URL)
        assert len(feed.articles) == 2


class TestClassifyError:
    def test_timeout(self):
        assert classify_error(httpx.ReadTimeout("slow")) == "timeout"

    def test_http_status(self):
        request = httpx.Request("GET", FEED_URL)
        response = httpx.Response(503, request=request)
        error = httpx.HTTPStatusError("unavailable", request=request, response=response)
        assert classify_error(error) == "http_503"

    def test_network(self):
        assert classify_error(httpx.ConnectError("refused")) == "network"

    def test_parse(self):
        assert classify_error(FeedParseError("bad xml")) == "parse"

    def test_other(self):
        assert classify_error(KeyError("x")) == "KeyError"


class TestFeedIngestionService:
    async def test_successful_sync_records_everything(self, db_session):
        fetcher = FakeFetcher(articles=_articles("https://a", "https://b"))
        service = FeedIngestionService(db_session, fetcher=fetcher, feeds={"tech": FEED_URL})

        result = await service.sync_feed("tech")

        assert result.success is True
        assert result.inserted == 2
        assert db_session.query(NewsArticle).count() == 2

        metric = db_session.query(FeedMetric).one()
        assert metric.success is True
        assert metric.articles_fetched == 2
        assert metric.articles_inserted == 2

        health = FeedHealthService(db_session).get("tech")
        assert health.consecutive_failures == 0
        assert health.health_status == HealthStatus.HEALTHY
        assert health.last_successful_fetch is not None

    async def test_duplicate_links_skipped(self, db_session):
        fetcher = FakeFetcher(articles=_articles("https://a", "https://b", "https://a"))
        service = FeedIngestionService(db_session, fetcher=fetcher, feeds={"tech": FEED_URL})

        first = await service.sync_feed("tech")
        assert first.inserted == 2
        assert first.skipped == 1

        second = await service.sync_feed("tech")
        assert second.inserted == 0
        assert second.skipped == 3
        assert db_session.query(NewsArticle).count() == 2

    async def test_rejected_article_does_not_fail_attempt(self, db_session):
        articles = _articles("https://a", "https://b")
        # title is NOT NULL, so this row is rejected by the database
        articles.insert(1, ParsedArticle(link="https://broken", title=None))
        fetcher = FakeFetcher(articles=articles)
        service = FeedIngestionService(db_session, fetcher=fetcher, feeds={"tech": FEED_URL})

        result = await service.sync_feed("tech")

        assert result.success is True
        assert result.inserted == 2
        assert result.skipped == 1
        assert sorted(a.link for a in db_session.query(NewsArticle).all()) == ["https://a", "https://b"]

        metric = db_session.query(FeedMetric).one()
        assert metric.success is True
        assert metric.articles_skipped == 1
        assert FeedHealthService(db_session).get("tech").consecutive_failures == 0

    async def test_failed_sync_records_failure(self, db_session):
        fetcher = FakeFetcher(error=httpx.ConnectError("connection refused"))
        service = FeedIngestionService(db_session, fetcher=fetcher, feeds={"tech": FEED_URL})

        result = await service.sync_feed("tech")

        assert result.success is False
        assert result.error_type == "network"

        metric = db_session.query(FeedMetric).one()
        assert metric.success is False
        assert metric.error_type == "network"
        assert "connection refused" in metric.error_message

        health = FeedHealthService(db_session).get("tech")
        assert health.consecutive_failures == 1
        assert health.health_status == HealthStatus.FAILING

    async def test_disabled_feed_not_fetched(self, db_session):
        health = FeedHealthService(db_session)
        health.get_or_create("tech")
        health.set_status("tech", HealthStatus.DISABLED)
        fetcher = FakeFetcher(articles=_articles("https://a"))
        service = FeedIngestionService(db_session, fetcher=fetcher, feeds={"tech": FEED_URL})

        result = await service.sync_feed("tech")

        assert result.skipped_disabled is True
        assert fetcher.calls == 0
        assert db_session.query(FeedMetric).count() == 0

    async def test_force_sync_ignores_disabled(self, db_session):
        health = FeedHealthService(db_session)
        health.get_or_create("tech")
        health.set_status("tech", HealthStatus.DISABLED)
        fetcher = FakeFetcher(articles=_articles("https://a"))
        service = FeedIngestionService(db_session, fetcher=fetcher, feeds={"tech": FEED_URL})

        result = await service.sync_feed("tech", force=True)

        assert result.success is True
        # A successful manual sync does not re-enable the feed
        assert FeedHealthService(db_session).is_disabled("tech") is True

    async def test_unknown_feed_raises(self, db_session):
        service = FeedIngestionService(db_session, fetcher=FakeFetcher(), feeds={})
        with pytest.raises(ValueError):
            await service.sync_feed("nope")

    async def test_sync_all_isolates_failures(self, db_session):
        class MixedFetcher:
            async def fetch(self, feed_key, feed_url):
                if feed_key == "broken":
                    raise httpx.ReadTimeout("slow")
                return FetchedFeed(title=None, description=None, articles=_articles(f"https://{feed_key}"))

        service = FeedIngestionService(
            db_session,
            fetcher=MixedFetcher(),
            feeds={"broken": "https://broken.example.com", "tech": FEED_URL},
        )
        results = await service.sync_all_feeds()

        assert results["broken"]["success"] is False
        assert results["broken"]["error_type"] == "timeout"
        assert results["tech"]["success"] is True
        assert results["tech"]["inserted"] == 1

    async def test_repeated_failures_auto_disable(self, db_session):
        fetcher = FakeFetcher(error=httpx.ReadTimeout("slow"))
        service = FeedIngestionService(db_session, fetcher=fetcher, feeds={"tech": FEED_URL})
        service.health.auto_disable_threshold = 3

        for _ in range(3):
            await service.sync_feed("tech")
        skipped = await service.sync_feed("tech")

        assert skipped.skipped_disabled is True
        assert fetcher.calls == 3
        assert FeedHealthService(db_session).get("tech").auto_disabled_at is not None
