from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Immutable model exchanged on the wire with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class ArticleSource(WireModel):
    id: str | None = Field(default=None, description="Publisher identifier")
    name: str | None = Field(default=None, description="Publisher name")


class Article(WireModel):
    title: str | None = Field(default=None, description="Article headline")
    description: str | None = Field(default=None, description="Short teaser or dek")
    content: str | None = Field(default=None, description="Truncated article body")
    url: str | None = Field(default=None, description="Canonical article URL")
    image_url: str | None = Field(
        default=None, alias="urlToImage", description="Lead image URL"
    )
    published_at: datetime | None = Field(
        default=None, description="Publication timestamp in UTC if available"
    )
    source: ArticleSource = Field(default_factory=ArticleSource)
    author: str | None = Field(default=None)

    @field_validator("published_at", mode="before")
    @classmethod
    def _coerce_published_at(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return as_utc(value)
        if isinstance(value, str):
            return parse_datetime(value)
        return value

    @field_validator("source", mode="before")
    @classmethod
    def _coerce_source(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def identity(self) -> tuple[str | None, datetime | None]:
        return self.url, self.published_at


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, TypeError, OverflowError):
        return None
    return as_utc(parsed)
