import logging
from datetime import timedelta

import pytest

from newswindow import http_client
from newswindow.config import Settings, configure_logging


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("NEWS_API_KEY", "env-key")
    monkeypatch.setenv("NEWS_API_BASE_URL", "https://news.internal/v2/")
    monkeypatch.setenv("OFFLINE_CACHE_TTL", "PT2H")
    monkeypatch.setenv("OFFLINE_CACHE_CLEANUP_INTERVAL", "PT10M")
    monkeypatch.setenv("OFFLINE_MODE_ENABLED", "false")

    settings = Settings()

    assert settings.news_api_key == "env-key"
    assert settings.news_api_url == "https://news.internal/v2"
    assert settings.offline_cache_ttl == timedelta(hours=2)
    assert settings.offline_cache_cleanup_interval == timedelta(minutes=10)
    assert settings.offline_mode_enabled is False


def test_settings_defaults(monkeypatch) -> None:
    monkeypatch.delenv("NEWS_API_KEY", raising=False)
    monkeypatch.delenv("OFFLINE_CACHE_TTL", raising=False)

    settings = Settings()

    assert settings.news_api_url == "https://newsapi.org/v2"
    assert settings.news_api_key is None
    assert settings.news_api_retry_attempts == 3
    assert settings.offline_cache_ttl == timedelta(hours=24)


def test_configure_logging_installs_one_handler() -> None:
    logger = logging.getLogger("newswindow")
    existing = list(logger.handlers)
    logger.handlers.clear()
    try:
        configure_logging(Settings(log_level="debug"))
        configure_logging(Settings(log_level="debug"))

        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
    finally:
        logger.handlers[:] = existing


@pytest.mark.asyncio
async def test_shared_http_client_is_reused_until_shutdown() -> None:
    first = await http_client.get_http_client()
    second = await http_client.get_http_client()
    assert first is second

    await http_client.shutdown_http_client()
    assert first.is_closed

    third = await http_client.get_http_client()
    assert third is not first
    await http_client.shutdown_http_client()


@pytest.mark.asyncio
async def test_built_client_carries_configured_headers_and_timeout() -> None:
    settings = Settings(http_timeout=3.5, http_user_agent="newswindow-tests/1.0")

    async with http_client.build_http_client(settings) as client:
        assert client.headers["User-Agent"] == "newswindow-tests/1.0"
        assert client.headers["Accept"] == "application/json"
        assert client.timeout.read == 3.5
        assert len(client.event_hooks["response"]) == 1
