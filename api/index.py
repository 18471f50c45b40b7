from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse

from newswindow import __version__
from newswindow.config import configure_logging, get_settings
from newswindow.errors import InternalError, SearchValidationError
from newswindow.http_client import shutdown_http_client
from newswindow.models import (
    DEFAULT_INTERVAL_VALUE,
    CacheStats,
    HealthReport,
    SearchResult,
    TimeUnit,
    build_search_request,
)
from newswindow.services import (
    NewsApiClient,
    NewsSearchService,
    NewsSource,
    OfflineCache,
)

logger = logging.getLogger("newswindow.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    cache = get_offline_cache()
    cache.start_cleanup()
    try:
        yield
    finally:
        await cache.stop_cleanup()
        await shutdown_http_client()


app = FastAPI(
    title="News Window Search API",
    version=__version__,
    description=(
        "Keyword news search grouped into time windows, served from an offline "
        "cache when NewsAPI is unavailable."
    ),
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)


@lru_cache
def get_offline_cache() -> OfflineCache:
    settings = get_settings()
    return OfflineCache(
        settings.offline_cache_ttl,
        cleanup_interval=settings.offline_cache_cleanup_interval,
    )


@lru_cache
def get_news_source() -> NewsSource:
    return NewsApiClient()


def get_search_service(
    source: NewsSource = Depends(get_news_source),
    cache: OfflineCache = Depends(get_offline_cache),
) -> NewsSearchService:
    return NewsSearchService(source=source, cache=cache)


def _error_body(code: str, message: str, details: dict[str, str]) -> dict[str, Any]:
    return {
        "errorCode": code,
        "message": message,
        "details": details,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.exception_handler(SearchValidationError)
async def handle_search_validation(
    request: Request, exc: SearchValidationError
) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=400,
        content=_error_body("VALIDATION_ERROR", "Request validation failed", exc.errors),
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    details = {
        ".".join(str(part) for part in error["loc"]): error["msg"]
        for error in exc.errors()
    }
    return ORJSONResponse(
        status_code=400,
        content=_error_body("TYPE_MISMATCH", "Parameter type mismatch", details),
    )


@app.exception_handler(InternalError)
async def handle_internal_error(request: Request, exc: InternalError) -> ORJSONResponse:
    logger.error("Search failed for %s: %s", request.url.path, exc)
    return ORJSONResponse(
        status_code=500,
        content=_error_body(
            "NEWS_SEARCH_ERROR",
            "News search operation failed",
            {"error": "Internal server error. Please try again later."},
        ),
    )


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/news/search", tags=["news"])
async def search_news(
    keyword: str | None = Query(None, description="Search keyword"),
    interval_value: int | None = Query(
        None, alias="intervalValue", description="Units per bucket (default: 12)"
    ),
    interval_unit: str | None = Query(
        None, alias="intervalUnit", description="Bucket unit (default: hours)"
    ),
    offline_mode: bool | None = Query(
        None, alias="offlineMode", description="Serve from the offline cache"
    ),
    service: NewsSearchService = Depends(get_search_service),
) -> SearchResult:
    request = build_search_request(
        {
            "keyword": keyword,
            "interval_value": interval_value,
            "interval_unit": interval_unit,
            "offline_mode": offline_mode,
        }
    )
    return await service.search(request)


@app.post("/news/search", tags=["news"])
async def search_news_post(
    payload: dict[str, Any] = Body(...),
    service: NewsSearchService = Depends(get_search_service),
) -> SearchResult:
    return await service.search(build_search_request(payload))


@app.get("/news/health", tags=["system"])
async def news_health(
    service: NewsSearchService = Depends(get_search_service),
) -> HealthReport:
    return await service.get_health()


@app.get("/news/cache/stats", tags=["cache"])
def cache_stats(cache: OfflineCache = Depends(get_offline_cache)) -> CacheStats:
    return cache.stats()


@app.delete("/news/cache", tags=["cache"])
def clear_cache(cache: OfflineCache = Depends(get_offline_cache)) -> dict[str, str]:
    cache.clear()
    return {
        "message": "Cache cleared successfully",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/news/info", tags=["system"])
async def api_info() -> dict[str, Any]:
    return {
        "service": "News Window Search API",
        "version": __version__,
        "supportedIntervals": [unit.value for unit in TimeUnit],
        "defaultInterval": {"value": DEFAULT_INTERVAL_VALUE, "unit": TimeUnit.HOURS.value},
        "features": [
            "NewsAPI integration",
            "Date-based grouping",
            "Offline mode support",
            "Caching",
        ],
    }
