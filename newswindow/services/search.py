from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, TypeVar

from ..config import Settings, get_settings
from ..errors import ExternalServiceError, InternalError
from ..models import (
    Article,
    ArticleSource,
    HealthReport,
    SearchRequest,
    SearchResult,
)
from .base import NewsSource
from .cache import Clock, OfflineCache, utcnow
from .grouping import group_articles, shift_back

logger = logging.getLogger(__name__)

T = TypeVar("T")

ONLINE_MESSAGE = "Results fetched from NewsAPI"
OFFLINE_MESSAGE = "Results from offline cache"
SAMPLE_ARTICLE_COUNT = 10
SAMPLE_SPACING = timedelta(hours=2)


def sample_articles(keyword: str, now: datetime) -> list[Article]:
    """Placeholder articles served when nothing is cached for ``keyword``."""
    source = ArticleSource(id="sample-source", name="Sample News Source")
    return [
        Article(
            title=f"Sample {keyword} news article {number}",
            description=(
                f"This is a sample news article about {keyword} "
                "for offline demonstration."
            ),
            content=f"Sample content for {keyword} article {number}",
            url=f"https://example.com/news/{number}",
            image_url=f"https://example.com/images/{number}.jpg",
            published_at=now - SAMPLE_SPACING * (number - 1),
            source=source,
            author=f"Sample Author {number}",
        )
        for number in range(1, SAMPLE_ARTICLE_COUNT + 1)
    ]


@dataclass(slots=True)
class NewsSearchService:
    """Search keyword news online, falling back to the offline cache."""

    source: NewsSource
    cache: OfflineCache
    settings: Settings | None = None
    clock: Clock = field(default=utcnow)

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = get_settings()

    async def search(self, request: SearchRequest) -> SearchResult:
        if request.offline_mode:
            return self._search_offline(request)
        try:
            return await self._search_online(request)
        except ExternalServiceError as exc:
            logger.warning(
                "Online search for %r failed (%s: %s); serving offline results",
                request.keyword,
                type(exc).__name__,
                exc,
            )
            return self._search_offline(request, fallback_reason=str(exc))
        except Exception:
            logger.warning(
                "Online search for %r failed unexpectedly; serving offline results",
                request.keyword,
                exc_info=True,
            )
            return self._search_offline(request, fallback_reason="unexpected error")

    async def get_health(self) -> HealthReport:
        try:
            available = await self.source.is_available()
        except Exception:
            logger.exception("News source availability probe raised")
            available = False
        return HealthReport(
            news_api_available=available,
            offline_mode_enabled=self.settings.offline_mode_enabled,
            timestamp=self.clock(),
            status="UP" if available else "DEGRADED",
        )

    async def _search_online(self, request: SearchRequest) -> SearchResult:
        now = self.clock()
        search_from = shift_back(now, request.interval_unit, request.interval_value)
        articles = await self.source.search(request.keyword, search_from, now)
        result = self._build_result(
            request, articles, now, from_cache=False, message=ONLINE_MESSAGE
        )
        self._guarded(self.cache.put, request.keyword, articles)
        return result

    def _search_offline(
        self, request: SearchRequest, fallback_reason: str | None = None
    ) -> SearchResult:
        now = self.clock()
        articles = self._guarded(self.cache.get, request.keyword)
        message = OFFLINE_MESSAGE
        if not articles:
            articles = sample_articles(request.keyword, now)
            message += (
                f" (no cached results for '{request.keyword}', showing sample data)"
            )
        if fallback_reason:
            message += f"; NewsAPI unavailable: {fallback_reason}"
        return self._build_result(
            request, articles, now, from_cache=True, message=message
        )

    def _build_result(
        self,
        request: SearchRequest,
        articles: list[Article],
        now: datetime,
        *,
        from_cache: bool,
        message: str,
    ) -> SearchResult:
        buckets = self._guarded(
            group_articles,
            articles,
            request.interval_value,
            request.interval_unit,
            now=now,
        )
        return SearchResult(
            keyword=request.keyword,
            interval_value=request.interval_value,
            interval_unit=request.interval_unit,
            search_timestamp=now,
            from_cache=from_cache,
            total_articles=len(articles),
            buckets=buckets,
            status="success",
            message=message,
        )

    @staticmethod
    def _guarded(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            logger.exception("%s failed", getattr(fn, "__name__", fn))
            raise InternalError(f"Search processing failed: {exc}") from exc
