from .base import NewsSource
from .cache import OfflineCache
from .grouping import group_articles, shift_back
from .newsapi import NewsApiClient
from .search import NewsSearchService

__all__ = [
    "NewsApiClient",
    "NewsSearchService",
    "NewsSource",
    "OfflineCache",
    "group_articles",
    "shift_back",
]
