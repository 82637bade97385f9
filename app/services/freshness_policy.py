"""
Freshness Policy - decides whether a cached category is due for generation.

Pure decision logic, no I/O. Consults the category policy table.
"""

from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from app.content.categories import ContentCategory, RefreshKind, get_policy
from app.content.reference_day import from_epoch_millis, month_start, reference_day, week_start

# Safety net against clock or timezone edge cases in the period comparison
MAX_AGE = {
    RefreshKind.DAILY_SCHEDULED: timedelta(hours=24),
    RefreshKind.WEEKLY_SCHEDULED: timedelta(days=7),
    RefreshKind.MONTHLY_SCHEDULED: timedelta(days=31),
}


def period_start(kind: RefreshKind, day: date) -> date:
    """First reference day of the scheduling period containing day."""
    if kind is RefreshKind.WEEKLY_SCHEDULED:
        return week_start(day)
    if kind is RefreshKind.MONTHLY_SCHEDULED:
        return month_start(day)
    return day


def is_due(
    category: ContentCategory,
    last_timestamp: Optional[int],
    now: datetime,
    tz: Optional[ZoneInfo] = None,
    grace: Optional[timedelta] = None,
) -> bool:
    """
    Is the category due for automatic generation?

    Args:
        category: Content category to check
        last_timestamp: Epoch millis of the last generation, None if never
        now: Current aware datetime
        tz, grace: Reference-day overrides (default from settings)
    """
    kind = get_policy(category).kind

    if kind is RefreshKind.PAID_ONLY:
        return False

    if kind is RefreshKind.ONE_TIME:
        return last_timestamp is None

    if last_timestamp is None:
        return True

    last = from_epoch_millis(last_timestamp)
    if now - last >= MAX_AGE[kind]:
        return True
    return (
        period_start(kind, reference_day(now, tz, grace))
        != period_start(kind, reference_day(last, tz, grace))
    )
