"""Partition timestamped articles into labeled, most-recent-first time windows.

Windows are carved backward from an anchor (the current time, or the newest
article if that is later). Every window is half-open ``[start, end)`` except
the most recent one, which also includes its end, so each article falls into
exactly one bucket. The oldest window is clamped to start at the oldest
article. Windows without articles are left out.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta

from ..models import Article, IntervalBucket, TimeUnit
from ..models.news import as_utc

Label = Callable[[datetime, datetime], str]


@dataclass(frozen=True, slots=True)
class _UnitRule:
    label: Label
    span: timedelta | None = None
    calendar_field: str | None = None

    def offset(self, amount: int) -> timedelta | relativedelta:
        if self.span is not None:
            return self.span * amount
        return relativedelta(**{self.calendar_field: amount})


def _whole_months(start: datetime, end: datetime) -> int:
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months


def _minutes_label(start: datetime, end: datetime) -> str:
    minutes = (end - start) // timedelta(minutes=1)
    return f"Last {minutes} minutes ({start:%H:%M} - {end:%H:%M})"


def _hours_label(start: datetime, end: datetime) -> str:
    hours = (end - start) // timedelta(hours=1)
    return f"Last {hours} hours ({start:%b %d %H:%M} - {end:%H:%M})"


def _days_label(start: datetime, end: datetime) -> str:
    days = (end - start).days
    return f"Last {days} days ({start:%b %d} - {end:%b %d})"


def _weeks_label(start: datetime, end: datetime) -> str:
    weeks = (end - start).days // 7
    return f"Last {weeks} weeks ({start:%b %d} - {end:%b %d})"


def _months_label(start: datetime, end: datetime) -> str:
    months = _whole_months(start, end)
    return f"Last {months} months ({start:%b %Y} - {end:%b %Y})"


def _years_label(start: datetime, end: datetime) -> str:
    years = relativedelta(end, start).years
    return f"Last {years} years ({start:%Y} - {end:%Y})"


_RULES: dict[TimeUnit, _UnitRule] = {
    TimeUnit.MINUTES: _UnitRule(_minutes_label, span=timedelta(minutes=1)),
    TimeUnit.HOURS: _UnitRule(_hours_label, span=timedelta(hours=1)),
    TimeUnit.DAYS: _UnitRule(_days_label, span=timedelta(days=1)),
    TimeUnit.WEEKS: _UnitRule(_weeks_label, span=timedelta(weeks=1)),
    TimeUnit.MONTHS: _UnitRule(_months_label, calendar_field="months"),
    TimeUnit.YEARS: _UnitRule(_years_label, calendar_field="years"),
}


EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def _back(moment: datetime, rule: _UnitRule, amount: int) -> datetime:
    # offsets reaching past year 1 saturate instead of overflowing
    try:
        return moment - rule.offset(amount)
    except (OverflowError, ValueError):
        return EARLIEST


def shift_back(moment: datetime, unit: TimeUnit, amount: int) -> datetime:
    """Return ``moment`` minus ``amount`` units, calendar-aware for months/years.

    Results earlier than the first representable instant are clamped to it.
    """
    return _back(moment, _RULES[unit], amount)


def _window_index(anchor: datetime, moment: datetime, width: timedelta) -> int:
    # window j covers [anchor - (j + 1) * width, anchor - j * width)
    return -((moment - anchor) // width) - 1


def group_articles(
    articles: Iterable[Article],
    interval_value: int,
    interval_unit: TimeUnit,
    *,
    now: datetime | None = None,
) -> dict[str, IntervalBucket]:
    """Group articles into windows of ``interval_value`` ``interval_unit``.

    Articles without a publication time are dropped. The returned mapping is
    ordered most recent window first and its bucket counts add up to the
    number of timestamped articles.
    """
    if interval_value <= 0:
        raise ValueError("interval value must be positive")

    dated = sorted(
        (article for article in articles if article.published_at is not None),
        key=lambda article: article.published_at,
        reverse=True,
    )
    if not dated:
        return {}

    rule = _RULES[interval_unit]
    oldest = dated[-1].published_at
    anchor = max(as_utc(now) if now else datetime.now(timezone.utc), dated[0].published_at)
    try:
        width = rule.span * interval_value if rule.span is not None else None
    except OverflowError:
        width = None

    groups: dict[str, IntervalBucket] = {}
    position = 0
    step = 0
    end = anchor
    while position < len(dated):
        start = _back(anchor, rule, interval_value * (step + 1))
        if start <= oldest < end:
            start = oldest

        members: list[Article] = []
        while position < len(dated) and dated[position].published_at >= start:
            members.append(dated[position])
            position += 1

        if members:
            label = rule.label(start, end)
            if label in groups:
                label = f"{label} [{start.isoformat()}]"
            groups[label] = IntervalBucket(
                label=label,
                start_time=start,
                end_time=end,
                count=len(members),
                articles=members,
            )
        elif width is not None:
            target = _window_index(anchor, dated[position].published_at, width)
            if target > step + 1:
                step = target
                end = _back(anchor, rule, interval_value * step)
                continue

        end = start
        step += 1

    return groups
