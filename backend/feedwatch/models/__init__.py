# SQLAlchemy models
from feedwatch.models.feed_health import FeedHealth, HealthStatus
from feedwatch.models.feed_metric import FeedMetric
from feedwatch.models.news_article import NewsArticle
from feedwatch.models.engagement import Engagement, EngagementStatus

__all__ = [
    "FeedHealth",
    "FeedMetric",
    "NewsArticle",
    "Engagement",
    # Enums
    "HealthStatus",
    "EngagementStatus",
]
