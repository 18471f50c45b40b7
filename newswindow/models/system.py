from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .news import WireModel


class CacheStats(WireModel):
    total_cached_keywords: int
    cache_duration_description: str = Field(
        description="Configured TTL as an ISO 8601 duration"
    )
    valid_cached_entries: int
    expired_entries: int
    cached_keywords: list[str] = Field(default_factory=list)


class HealthReport(WireModel):
    news_api_available: bool
    offline_mode_enabled: bool
    timestamp: datetime
    status: str = Field(description="UP when the news source answers, else DEGRADED")
