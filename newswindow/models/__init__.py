from .news import Article, ArticleSource
from .search import (
    DEFAULT_INTERVAL_VALUE,
    IntervalBucket,
    SearchRequest,
    SearchResult,
    TimeUnit,
    build_search_request,
)
from .system import CacheStats, HealthReport

__all__ = [
    "Article",
    "ArticleSource",
    "CacheStats",
    "DEFAULT_INTERVAL_VALUE",
    "HealthReport",
    "IntervalBucket",
    "SearchRequest",
    "SearchResult",
    "TimeUnit",
    "build_search_request",
]
