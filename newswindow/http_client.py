import asyncio
import logging

import httpx

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

_shared: httpx.AsyncClient | None = None
_shared_lock = asyncio.Lock()


async def _log_request(request: httpx.Request) -> None:
    logger.debug("-> %s %s", request.method, request.url)


async def _log_response(response: httpx.Response) -> None:
    request = response.request
    logger.debug(
        "<- %s %s %s", response.status_code, request.method, request.url.path
    )


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create an outbound client configured for JSON news APIs."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout),
        limits=httpx.Limits(
            max_connections=settings.http_max_connections,
            max_keepalive_connections=settings.http_max_keepalive,
        ),
        headers={
            "User-Agent": settings.http_user_agent,
            "Accept": "application/json",
        },
        event_hooks={"request": [_log_request], "response": [_log_response]},
    )


async def get_http_client() -> httpx.AsyncClient:
    """Return the process-wide client, creating it on first use."""
    global _shared

    if _shared is not None:
        return _shared
    async with _shared_lock:
        if _shared is None:
            settings = get_settings()
            _shared = build_http_client(settings)
            logger.info(
                "Created shared HTTP client (timeout=%ss, max_connections=%s)",
                settings.http_timeout,
                settings.http_max_connections,
            )
        return _shared


async def shutdown_http_client() -> None:
    global _shared

    client, _shared = _shared, None
    if client is None:
        return
    await client.aclose()
    logger.info("Closed shared HTTP client")
