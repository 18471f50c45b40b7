import logging
from datetime import timedelta
from functools import lru_cache

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="", extra="ignore", populate_by_name=True
    )

    http_timeout: float = Field(10.0, gt=0, alias="HTTP_TIMEOUT")
    http_max_connections: int = Field(20, ge=1, alias="HTTP_MAX_CONNECTIONS")
    http_max_keepalive: int = Field(10, ge=1, alias="HTTP_MAX_KEEPALIVE")
    http_user_agent: str = Field(
        "newswindow/0.1 (+https://example.com; contact=admin@example.com)",
        alias="HTTP_USER_AGENT",
    )

    news_api_base_url: HttpUrl = Field(
        "https://newsapi.org/v2", alias="NEWS_API_BASE_URL"
    )
    news_api_key: str | None = Field(default=None, alias="NEWS_API_KEY")
    news_api_language: str | None = Field("en", alias="NEWS_API_LANGUAGE")
    news_api_page_size: int = Field(100, ge=1, le=100, alias="NEWS_API_PAGE_SIZE")
    news_api_retry_attempts: int = Field(3, ge=0, alias="NEWS_API_RETRY_ATTEMPTS")
    news_api_retry_backoff: float = Field(1.0, ge=0, alias="NEWS_API_RETRY_BACKOFF")
    news_api_retry_max_backoff: float = Field(
        8.0, ge=0, alias="NEWS_API_RETRY_MAX_BACKOFF"
    )
    news_api_health_timeout: float = Field(
        5.0, gt=0, alias="NEWS_API_HEALTH_TIMEOUT"
    )

    offline_mode_enabled: bool = Field(True, alias="OFFLINE_MODE_ENABLED")
    offline_cache_ttl: timedelta = Field(
        timedelta(hours=24), alias="OFFLINE_CACHE_TTL"
    )
    offline_cache_cleanup_interval: timedelta = Field(
        timedelta(hours=1), alias="OFFLINE_CACHE_CLEANUP_INTERVAL"
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @property
    def news_api_url(self) -> str:
        return str(self.news_api_base_url).rstrip("/")


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Install a single stream handler on the package logger."""
    settings = settings or get_settings()
    logger = logging.getLogger("newswindow")
    logger.setLevel(settings.log_level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
