from datetime import datetime, timedelta, timezone

import httpx
import pytest
import respx

from newswindow.config import Settings
from newswindow.errors import (
    ClientRequestError,
    MalformedResponseError,
    RateLimitedError,
    ServerError,
    UnauthorizedError,
    UpstreamTimeoutError,
)
from newswindow.models import build_search_request
from newswindow.services.cache import OfflineCache
from newswindow.services.newsapi import NewsApiClient
from newswindow.services.search import NewsSearchService

EVERYTHING_URL = "https://newsapi.org/v2/everything"
HEADLINES_URL = "https://newsapi.org/v2/top-headlines"
TO_TIME = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)
FROM_TIME = TO_TIME - timedelta(hours=12)

PAYLOAD = {
    "status": "ok",
    "totalResults": 3,
    "articles": [
        {
            "source": {"id": "the-verge", "name": "The Verge"},
            "author": "Jane Doe",
            "title": "Bitcoin rallies past resistance",
            "description": "<p>Prices <b>jumped</b> overnight.</p>",
            "url": "https://www.theverge.com/bitcoin-rally",
            "urlToImage": "https://cdn.theverge.com/bitcoin.jpg",
            "publishedAt": "2024-05-20T09:15:00Z",
            "content": "Traders cheered [+1200 chars]",
        },
        {
            "source": {"id": None, "name": "Example Wire"},
            "author": None,
            "title": "Miners react to halving",
            "description": None,
            "url": "https://wire.example/miners",
            "urlToImage": None,
            "publishedAt": "not a date",
            "content": None,
        },
        {
            "source": {"id": None, "name": "[Removed]"},
            "title": "[Removed]",
            "url": "https://removed.com",
            "publishedAt": "1970-01-01T00:00:00Z",
        },
    ],
}


def _settings(**overrides) -> Settings:
    values = {
        "news_api_key": "test-key",
        "news_api_retry_attempts": 2,
        "news_api_retry_backoff": 0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.mark.asyncio
async def test_search_parses_and_cleans_articles() -> None:
    async with httpx.AsyncClient() as client:
        service = NewsApiClient(settings=_settings(), client=client)
        with respx.mock(assert_all_called=True) as mock:
            route = mock.get(EVERYTHING_URL).respond(200, json=PAYLOAD)
            articles = await service.search("bitcoin", FROM_TIME, TO_TIME)

    request = route.calls.last.request
    assert request.url.params["q"] == "bitcoin"
    assert request.url.params["from"] == "2024-05-20T00:00:00"
    assert request.url.params["to"] == "2024-05-20T12:00:00"
    assert request.url.params["sortBy"] == "publishedAt"
    assert request.headers["X-Api-Key"] == "test-key"

    assert len(articles) == 2
    first = articles[0]
    assert first.title == "Bitcoin rallies past resistance"
    assert first.description == "Prices jumped overnight."
    assert first.image_url == "https://cdn.theverge.com/bitcoin.jpg"
    assert first.source.name == "The Verge"
    assert first.published_at == datetime(2024, 5, 20, 9, 15, tzinfo=timezone.utc)
    assert articles[1].published_at is None


@pytest.mark.asyncio
async def test_server_errors_are_retried_then_raised() -> None:
    async with httpx.AsyncClient() as client:
        service = NewsApiClient(settings=_settings(), client=client)
        with respx.mock() as mock:
            route = mock.get(EVERYTHING_URL).respond(503, json={"message": "down"})
            with pytest.raises(ServerError):
                await service.search("bitcoin", FROM_TIME, TO_TIME)

    assert route.call_count == 3


@pytest.mark.asyncio
async def test_timeout_is_retried_until_success() -> None:
    async with httpx.AsyncClient() as client:
        service = NewsApiClient(settings=_settings(), client=client)
        with respx.mock() as mock:
            route = mock.get(EVERYTHING_URL).mock(
                side_effect=[
                    httpx.ReadTimeout("slow"),
                    httpx.Response(200, json=PAYLOAD),
                ]
            )
            articles = await service.search("bitcoin", FROM_TIME, TO_TIME)

    assert route.call_count == 2
    assert len(articles) == 2


@pytest.mark.asyncio
async def test_exhausted_timeouts_raise_timeout_error() -> None:
    async with httpx.AsyncClient() as client:
        service = NewsApiClient(
            settings=_settings(news_api_retry_attempts=1), client=client
        )
        with respx.mock() as mock:
            route = mock.get(EVERYTHING_URL).mock(side_effect=httpx.ConnectTimeout("x"))
            with pytest.raises(UpstreamTimeoutError):
                await service.search("bitcoin", FROM_TIME, TO_TIME)

    assert route.call_count == 2


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (401, UnauthorizedError),
        (429, RateLimitedError),
        (400, ClientRequestError),
    ],
)
@pytest.mark.asyncio
async def test_terminal_errors_are_not_retried(status: int, error: type) -> None:
    async with httpx.AsyncClient() as client:
        service = NewsApiClient(settings=_settings(), client=client)
        with respx.mock() as mock:
            route = mock.get(EVERYTHING_URL).respond(
                status, json={"status": "error", "message": "nope"}
            )
            with pytest.raises(error, match="nope"):
                await service.search("bitcoin", FROM_TIME, TO_TIME)

    assert route.call_count == 1


@pytest.mark.asyncio
async def test_malformed_payload_is_terminal() -> None:
    async with httpx.AsyncClient() as client:
        service = NewsApiClient(settings=_settings(), client=client)
        with respx.mock() as mock:
            route = mock.get(EVERYTHING_URL).respond(200, text="<html>oops</html>")
            with pytest.raises(MalformedResponseError):
                await service.search("bitcoin", FROM_TIME, TO_TIME)

    assert route.call_count == 1


@pytest.mark.asyncio
async def test_missing_api_key_fails_without_calling_upstream() -> None:
    async with httpx.AsyncClient() as client:
        service = NewsApiClient(settings=_settings(news_api_key=None), client=client)
        with respx.mock(assert_all_called=False) as mock:
            route = mock.get(EVERYTHING_URL).respond(200, json=PAYLOAD)
            with pytest.raises(UnauthorizedError):
                await service.search("bitcoin", FROM_TIME, TO_TIME)

    assert not route.called


@pytest.mark.asyncio
async def test_is_available_reflects_upstream_health() -> None:
    async with httpx.AsyncClient() as client:
        service = NewsApiClient(settings=_settings(), client=client)
        with respx.mock() as mock:
            mock.get(HEADLINES_URL).respond(200, json={"status": "ok"})
            assert await service.is_available() is True

        with respx.mock() as mock:
            mock.get(HEADLINES_URL).respond(401, json={"status": "error"})
            assert await service.is_available() is False

        with respx.mock() as mock:
            mock.get(HEADLINES_URL).mock(side_effect=httpx.ConnectError("refused"))
            assert await service.is_available() is False


@pytest.mark.asyncio
async def test_undecodable_body_is_malformed_and_served_offline() -> None:
    async with httpx.AsyncClient() as client:
        source = NewsApiClient(settings=_settings(), client=client)
        service = NewsSearchService(
            source=source,
            cache=OfflineCache(timedelta(hours=1)),
            settings=_settings(),
        )
        with respx.mock() as mock:
            route = mock.get(EVERYTHING_URL).respond(
                200, headers={"Content-Encoding": "gzip"}, content=b"not gzip"
            )
            with pytest.raises(MalformedResponseError):
                await source.search("bitcoin", FROM_TIME, TO_TIME)
            result = await service.search(build_search_request({"keyword": "bitcoin"}))

    assert route.call_count == 2
    assert result.from_cache is True
    assert result.total_articles == 10


@pytest.mark.asyncio
async def test_earliest_instant_is_sent_zero_padded() -> None:
    earliest = datetime.min.replace(tzinfo=timezone.utc)
    async with httpx.AsyncClient() as client:
        service = NewsApiClient(settings=_settings(), client=client)
        with respx.mock() as mock:
            route = mock.get(EVERYTHING_URL).respond(200, json=PAYLOAD)
            await service.search("bitcoin", earliest, TO_TIME)

    assert route.calls.last.request.url.params["from"] == "0001-01-01T00:00:00"
