from feedwatch.services.feeds.fetcher import FeedFetcher, FetchedFeed, ParsedArticle, FeedParseError
from feedwatch.services.feeds.ingestion import FeedIngestionService, IngestResult, classify_error

__all__ = [
    "FeedFetcher",
    "FetchedFeed",
    "ParsedArticle",
    "FeedParseError",
    "FeedIngestionService",
    "IngestResult",
    "classify_error",
]
