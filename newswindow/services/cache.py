from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from ..models import Article, CacheStats

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_keyword(keyword: str | None) -> str:
    return (keyword or "").strip().lower()


def describe_duration(duration: timedelta) -> str:
    """Render a timedelta as an ISO 8601 duration, e.g. ``PT24H``."""
    total = int(duration.total_seconds())
    if total == 0:
        return "PT0S"
    sign = "-" if total < 0 else ""
    hours, remainder = divmod(abs(total), 3600)
    minutes, seconds = divmod(remainder, 60)
    parts = [
        f"{value}{suffix}"
        for value, suffix in ((hours, "H"), (minutes, "M"), (seconds, "S"))
        if value
    ]
    return f"{sign}PT{''.join(parts)}"


@dataclass(frozen=True, slots=True)
class CacheEntry:
    normalized_keyword: str
    articles: tuple[Article, ...]
    cached_at: datetime

    def expired(self, now: datetime, ttl: timedelta) -> bool:
        return now >= self.cached_at + ttl


class OfflineCache:
    """In-memory keyword -> articles store backing the offline search path.

    Entries expire ``ttl`` after they were written and are never served once
    expired, whether or not the periodic cleanup has removed them yet. Lookups
    fall back to substring matching between the query and cached keywords.
    """

    def __init__(
        self,
        ttl: timedelta,
        *,
        cleanup_interval: timedelta = timedelta(hours=1),
        clock: Clock = utcnow,
    ) -> None:
        self._ttl = ttl
        self._cleanup_interval = cleanup_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._cleanup_task: asyncio.Task[None] | None = None

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def put(self, keyword: str | None, articles: Iterable[Article]) -> None:
        normalized = normalize_keyword(keyword)
        snapshot = tuple(articles)
        if not normalized or not snapshot:
            return
        entry = CacheEntry(normalized, snapshot, self._clock())
        with self._lock:
            self._entries[normalized] = entry
        logger.debug("Cached %d articles for %r", len(snapshot), normalized)

    def get(self, keyword: str | None) -> list[Article]:
        normalized = normalize_keyword(keyword)
        if not normalized:
            return []
        now = self._clock()
        with self._lock:
            exact = self._entries.get(normalized)
            if exact is not None and not exact.expired(now, self._ttl):
                return list(exact.articles)
            for key, entry in self._entries.items():
                if entry.expired(now, self._ttl):
                    continue
                if key in normalized or normalized in key:
                    logger.debug("Fuzzy cache hit for %r via %r", normalized, key)
                    return list(entry.articles)
        return []

    def stats(self) -> CacheStats:
        now = self._clock()
        with self._lock:
            keywords = list(self._entries)
            valid = sum(
                1 for entry in self._entries.values() if not entry.expired(now, self._ttl)
            )
        return CacheStats(
            total_cached_keywords=len(keywords),
            cache_duration_description=describe_duration(self._ttl),
            valid_cached_entries=valid,
            expired_entries=len(keywords) - valid,
            cached_keywords=keywords,
        )

    def cleanup_expired(self) -> None:
        now = self._clock()
        with self._lock:
            expired = [
                key for key, entry in self._entries.items() if entry.expired(now, self._ttl)
            ]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("Removed %d expired cache entries", len(expired))

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Cleared offline cache (%d entries)", count)

    def start_cleanup(self) -> None:
        """Schedule periodic cleanup on the running event loop."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.get_running_loop().create_task(
            self._cleanup_loop(), name="offline-cache-cleanup"
        )

    async def stop_cleanup(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _cleanup_loop(self) -> None:
        interval = self._cleanup_interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            try:
                self.cleanup_expired()
            except Exception:
                logger.exception("Offline cache cleanup failed")
