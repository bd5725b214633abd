from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    env: str = "dev"
    database_url: str = "sqlite:///./data/feedwatch.db"
    redis_url: str = "redis://localhost:6379/0"

    scheduler_enabled: bool = True
    scheduler_timezone: str = "UTC"

    # Feed health policy
    feed_alert_threshold: int = 3
    feed_auto_disable_threshold: int = 10
    failing_rate_24h: int = 30
    failing_rate_7d: int = 50
    degraded_rate_24h: int = 70
    degraded_rate_7d: int = 80
    feed_error_max_length: int = 500

    rss_feeds: dict[str, str] = {
        "high_rating": "https://rss.the-morpheus.news/rss/high_rating",
    }
    rss_sync_hour: int = 8

    # Background job schedules
    insights_cron_hour: int = 9
    risk_cron_day_of_week: str = "mon"
    risk_cron_hour: int = 10

    ai_provider: str = "none"
    ai_api_key: str = ""
    ai_model: str = ""
    ai_base_url: str = ""

    def model_post_init(self, __context):
        if self.env == "prod" and self.database_url.startswith("sqlite"):
            raise ValueError(
                "Production requires explicit DATABASE_URL (not SQLite)"
            )

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
