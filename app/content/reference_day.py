"""
Reference day calculation.

The daily forecast is keyed on the calendar date in a fixed reference
timezone, with a short grace window after midnight before the day rolls
over (00:00-00:01 Moscow time still counts as the previous day).
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import settings


def reference_zone() -> ZoneInfo:
    return ZoneInfo(settings.reference_timezone)


def default_grace() -> timedelta:
    return timedelta(minutes=settings.day_rollover_grace_minutes)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        raise ValueError("naive datetime; pass an aware datetime")
    return int(moment.timestamp() * 1000)


def from_epoch_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def reference_day(
    moment: datetime,
    tz: Optional[ZoneInfo] = None,
    grace: Optional[timedelta] = None,
) -> date:
    """Effective reference day of an aware datetime."""
    if moment.tzinfo is None:
        raise ValueError("naive datetime; pass an aware datetime")
    tz = tz or reference_zone()
    grace = default_grace() if grace is None else grace
    # Subtract in UTC, then convert, so DST transitions don't shift the grace
    return (moment.astimezone(timezone.utc) - grace).astimezone(tz).date()


def reference_day_from_millis(
    millis: int,
    tz: Optional[ZoneInfo] = None,
    grace: Optional[timedelta] = None,
) -> date:
    return reference_day(from_epoch_millis(millis), tz, grace)


def week_start(day: date) -> date:
    """Monday of the reference week containing day."""
    return day - timedelta(days=day.weekday())


def month_start(day: date) -> date:
    return day.replace(day=1)
