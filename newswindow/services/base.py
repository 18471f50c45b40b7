from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from ..models import Article


@runtime_checkable
class NewsSource(Protocol):
    """Upstream provider of keyword news searches.

    ``search`` raises :class:`~newswindow.errors.ExternalServiceError` (or a
    subclass) when the provider cannot answer; ``is_available`` never raises.
    """

    async def search(
        self, keyword: str, from_time: datetime, to_time: datetime
    ) -> list[Article]: ...

    async def is_available(self) -> bool: ...
