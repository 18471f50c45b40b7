from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field, ValidationError, field_validator, model_validator

from ..errors import SearchValidationError
from .news import Article, WireModel

DEFAULT_INTERVAL_VALUE = 12


class TimeUnit(str, Enum):
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> TimeUnit:
        """Parse a wire value, case-insensitively, accepting singular forms."""
        normalized = value.strip().lower()
        for candidate in (normalized, f"{normalized}s"):
            try:
                return cls(candidate)
            except ValueError:
                continue
        supported = ", ".join(unit.value for unit in cls)
        raise ValueError(
            f"Invalid time interval: {value}. Supported values: {supported}"
        )


class SearchRequest(WireModel):
    keyword: str = Field(description="Search keyword")
    interval_value: int = Field(
        DEFAULT_INTERVAL_VALUE, description="Number of units per bucket"
    )
    interval_unit: TimeUnit = Field(TimeUnit.HOURS, description="Bucket unit")
    offline_mode: bool = Field(False, description="Serve from the offline cache")

    @field_validator("keyword", mode="before")
    @classmethod
    def _require_keyword(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
        if not value:
            raise ValueError("keyword is required")
        return value

    @field_validator("interval_value", mode="before")
    @classmethod
    def _default_interval_value(cls, value: Any) -> Any:
        return DEFAULT_INTERVAL_VALUE if value is None else value

    @field_validator("interval_value")
    @classmethod
    def _positive_interval_value(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("interval value must be positive")
        return value

    @field_validator("interval_unit", mode="before")
    @classmethod
    def _parse_interval_unit(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return TimeUnit.HOURS
        if isinstance(value, str) and not isinstance(value, TimeUnit):
            return TimeUnit.parse(value)
        return value

    @field_validator("offline_mode", mode="before")
    @classmethod
    def _default_offline_mode(cls, value: Any) -> Any:
        return False if value is None else value


def build_search_request(data: Mapping[str, Any]) -> SearchRequest:
    """Apply defaults and validate raw request fields.

    Keys may be given either as wire names (``intervalValue``) or attribute
    names (``interval_value``). Missing or ``None`` optional fields take their
    defaults; problems are reported field by field as a
    :class:`SearchValidationError`.
    """
    try:
        return SearchRequest.model_validate(dict(data))
    except ValidationError as exc:
        errors: dict[str, str] = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"]) or "request"
            if error["type"] == "missing":
                message = f"{field} is required"
            elif error["type"] == "value_error":
                message = str(error["ctx"]["error"])
            else:
                message = error["msg"]
            errors.setdefault(field, message)
        raise SearchValidationError(errors) from exc


class IntervalBucket(WireModel):
    label: str = Field(alias="intervalLabel")
    start_time: datetime
    end_time: datetime
    count: int
    articles: list[Article] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_window(self) -> IntervalBucket:
        if self.start_time >= self.end_time:
            raise ValueError("bucket start must precede its end")
        return self


class SearchResult(WireModel):
    keyword: str
    interval_value: int
    interval_unit: TimeUnit
    search_timestamp: datetime
    from_cache: bool
    total_articles: int
    buckets: dict[str, IntervalBucket] = Field(
        default_factory=dict, alias="intervalGroups"
    )
    status: str = "success"
    message: str | None = None
