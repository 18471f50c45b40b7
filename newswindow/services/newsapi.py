from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field, ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..config import Settings, get_settings
from ..errors import (
    ClientRequestError,
    ExternalServiceError,
    MalformedResponseError,
    RateLimitedError,
    ServerError,
    UnauthorizedError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)
from ..http_client import get_http_client
from ..models import Article

logger = logging.getLogger(__name__)

REMOVED_MARKER = "[Removed]"


class NewsApiResponse(BaseModel):
    status: str
    total_results: int | None = Field(default=None, alias="totalResults")
    articles: list[Article] = Field(default_factory=list)
    code: str | None = None
    message: str | None = None


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, ExternalServiceError) and exc.transient


@dataclass(slots=True)
class NewsApiClient:
    settings: Settings | None = None
    client: httpx.AsyncClient | None = None

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = get_settings()

    async def search(
        self, keyword: str, from_time: datetime, to_time: datetime
    ) -> list[Article]:
        if not self.settings.news_api_key:
            raise UnauthorizedError("NEWS_API_KEY is not configured")

        params: dict[str, str | int] = {
            "q": keyword,
            "from": _format_timestamp(from_time),
            "to": _format_timestamp(to_time),
            "sortBy": "publishedAt",
            "pageSize": self.settings.news_api_page_size,
        }
        if self.settings.news_api_language:
            params["language"] = self.settings.news_api_language

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.news_api_retry_attempts + 1),
            wait=wait_exponential(
                multiplier=self.settings.news_api_retry_backoff,
                max=self.settings.news_api_retry_max_backoff,
            ),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        payload = await retrying(self._get_json, "/everything", params)
        articles = self._parse_articles(payload)
        logger.info(
            "NewsAPI returned %d articles for %r (%s - %s)",
            len(articles),
            keyword,
            params["from"],
            params["to"],
        )
        return articles

    async def is_available(self) -> bool:
        if not self.settings.news_api_key:
            return False
        client = self.client or await get_http_client()
        try:
            response = await client.get(
                f"{self.settings.news_api_url}/top-headlines",
                params={"country": "us", "pageSize": 1},
                headers=self._headers(),
                timeout=self.settings.news_api_health_timeout,
            )
        except httpx.HTTPError as exc:
            logger.info("NewsAPI availability probe failed: %s", exc)
            return False
        return response.is_success

    def _headers(self) -> dict[str, str]:
        return {"X-Api-Key": self.settings.news_api_key or ""}

    async def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        client = self.client or await get_http_client()
        url = f"{self.settings.news_api_url}{path}"
        try:
            response = await client.get(url, params=params, headers=self._headers())
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError(f"NewsAPI request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise UpstreamTransportError(f"NewsAPI unreachable: {exc}") from exc
        except httpx.DecodingError as exc:
            raise MalformedResponseError(
                f"NewsAPI response could not be decoded: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(f"NewsAPI request failed: {exc}") from exc

        _raise_for_status(response)
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                "NewsAPI returned a non-JSON body", response.status_code
            ) from exc

    def _parse_articles(self, payload: Any) -> list[Article]:
        if isinstance(payload, dict):
            payload = {
                **payload,
                "articles": [
                    _clean_item(item)
                    for item in payload.get("articles") or []
                    if isinstance(item, dict)
                ],
            }
        try:
            parsed = NewsApiResponse.model_validate(payload)
        except ValidationError as exc:
            raise MalformedResponseError(f"Unexpected NewsAPI payload: {exc}") from exc
        if parsed.status != "ok":
            raise ClientRequestError(
                parsed.message or f"NewsAPI reported status {parsed.status!r}"
            )
        return [article for article in parsed.articles if article.title != REMOVED_MARKER]


def _raise_for_status(response: httpx.Response) -> None:
    status = response.status_code
    if response.is_success:
        return
    detail = _error_message(response)
    if status == 429:
        raise RateLimitedError(f"Rate limit exceeded: {detail}", status)
    if status == 401:
        raise UnauthorizedError(f"Invalid API key: {detail}", status)
    if 400 <= status < 500:
        raise ClientRequestError(f"Client error {status}: {detail}", status)
    raise ServerError(f"Server error {status}: {detail}", status)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


def _clean_item(item: dict[str, Any]) -> dict[str, Any]:
    return {
        **item,
        "description": _clean_text(item.get("description")),
        "content": _clean_text(item.get("content")),
    }


def _clean_text(value: Any) -> Any:
    if not isinstance(value, str) or "<" not in value:
        return value
    text = BeautifulSoup(value, "lxml").get_text(" ", strip=True)
    return text or None


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    # isoformat zero-pads years before 1000, strftime does not
    return value.replace(tzinfo=None, microsecond=0).isoformat()
