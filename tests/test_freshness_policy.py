"""
Tests for the freshness policy and reference day.
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from app.content.categories import ContentCategory, DeepDiveTopic, RefreshKind, get_policy
from app.content.reference_day import reference_day, to_epoch_millis
from app.services.freshness_policy import is_due, period_start


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def millis(*args) -> int:
    return to_epoch_millis(utc(*args))


def test_one_time_due_only_when_never_generated():
    now = utc(2024, 6, 1, 12, 0)

    assert is_due(ContentCategory.INTRO, None, now) is True
    assert is_due(ContentCategory.INTRO, millis(2020, 1, 1), now) is False
    assert is_due(DeepDiveTopic.LOVE.category, None, now) is True
    assert is_due(DeepDiveTopic.LOVE.category, millis(2024, 6, 1, 11, 0), now) is False


def test_paid_only_never_due():
    now = utc(2024, 6, 1, 12, 0)

    assert is_due(ContentCategory.TRANSIT_FORECAST, None, now) is False
    assert is_due(ContentCategory.TRANSIT_FORECAST, millis(2020, 1, 1), now) is False


def test_daily_due_when_never_generated():
    assert is_due(ContentCategory.DAILY_FORECAST, None, utc(2024, 6, 1, 12, 0)) is True


def test_daily_not_due_same_reference_day():
    # 11:00 and 15:00 Moscow time
    last = millis(2024, 6, 1, 8, 0)
    assert is_due(ContentCategory.DAILY_FORECAST, last, utc(2024, 6, 1, 12, 0)) is False


def test_daily_due_after_rollover():
    # 23:00 Moscow on May 31, then 15:00 Moscow on June 1
    last = millis(2024, 5, 31, 20, 0)
    assert is_due(ContentCategory.DAILY_FORECAST, last, utc(2024, 6, 1, 12, 0)) is True


def test_daily_rollover_waits_for_grace_window():
    last = millis(2024, 5, 31, 20, 59)  # 23:59 Moscow

    # 00:00:30 Moscow still belongs to May 31
    assert is_due(ContentCategory.DAILY_FORECAST, last, utc(2024, 5, 31, 21, 0, 30)) is False
    # 00:01:30 Moscow is June 1
    assert is_due(ContentCategory.DAILY_FORECAST, last, utc(2024, 5, 31, 21, 1, 30)) is True


def test_daily_due_after_24_hours():
    last = millis(2024, 6, 1, 12, 0)
    now = utc(2024, 6, 2, 12, 0)
    assert is_due(ContentCategory.DAILY_FORECAST, last, now) is True


def test_daily_uses_reference_zone_not_utc():
    # Same UTC date, different Moscow dates (20:00 MSK vs 01:00 MSK next day)
    last = millis(2024, 6, 1, 17, 0)
    now = utc(2024, 6, 1, 22, 0)
    assert is_due(ContentCategory.DAILY_FORECAST, last, now) is True

    # Same Moscow date but different UTC dates
    last = millis(2024, 5, 31, 22, 0)  # 01:00 MSK June 1
    now = utc(2024, 6, 1, 10, 0)
    assert is_due(ContentCategory.DAILY_FORECAST, last, now) is False


def test_reference_day_grace_boundary():
    assert reference_day(utc(2024, 5, 31, 21, 0, 59)) == date(2024, 5, 31)
    assert reference_day(utc(2024, 5, 31, 21, 1, 0)) == date(2024, 6, 1)


def test_reference_day_overrides():
    moment = utc(2024, 6, 1, 0, 30)
    assert reference_day(moment, ZoneInfo("UTC"), timedelta(0)) == date(2024, 6, 1)
    assert reference_day(moment, ZoneInfo("UTC"), timedelta(hours=1)) == date(2024, 5, 31)


def test_weekly_not_due_within_reference_week():
    # Monday 2024-05-27 10:00 MSK, then Sunday 2024-06-02 23:00 MSK
    last = millis(2024, 5, 27, 7, 0)
    assert is_due(ContentCategory.WEEKLY_FORECAST, last, utc(2024, 6, 2, 20, 0)) is False


def test_weekly_due_after_monday_rollover():
    last = millis(2024, 6, 2, 20, 0)  # Sunday 23:00 MSK
    # Monday 00:00:30 MSK is still in the grace window, 00:01:30 is not
    assert is_due(ContentCategory.WEEKLY_FORECAST, last, utc(2024, 6, 2, 21, 0, 30)) is False
    assert is_due(ContentCategory.WEEKLY_FORECAST, last, utc(2024, 6, 2, 21, 1, 30)) is True


def test_weekly_due_after_seven_days():
    assert is_due(ContentCategory.WEEKLY_FORECAST, millis(2024, 6, 3, 12, 0), utc(2024, 6, 10, 12, 0)) is True
    assert is_due(ContentCategory.WEEKLY_FORECAST, None, utc(2024, 6, 3, 12, 0)) is True


def test_monthly_due_on_month_rollover_only():
    last = millis(2024, 6, 1, 12, 0)

    assert is_due(ContentCategory.MONTHLY_FORECAST, last, utc(2024, 6, 30, 12, 0)) is False
    assert is_due(ContentCategory.MONTHLY_FORECAST, last, utc(2024, 7, 1, 12, 0)) is True


def test_monthly_uses_reference_zone():
    # 2024-06-30 22:00 UTC is 2024-07-01 01:00 MSK
    last = millis(2024, 6, 15, 12, 0)
    assert is_due(ContentCategory.MONTHLY_FORECAST, last, utc(2024, 6, 30, 22, 0)) is True


def test_period_start():
    saturday = date(2024, 6, 1)

    assert period_start(RefreshKind.DAILY_SCHEDULED, saturday) == saturday
    assert period_start(RefreshKind.WEEKLY_SCHEDULED, saturday) == date(2024, 5, 27)
    assert period_start(RefreshKind.MONTHLY_SCHEDULED, date(2024, 6, 17)) == date(2024, 6, 1)


def test_three_keys_is_one_time():
    assert is_due(ContentCategory.THREE_KEYS, None, utc(2024, 6, 1, 12, 0)) is True
    assert is_due(ContentCategory.THREE_KEYS, millis(2020, 1, 1), utc(2024, 6, 1, 12, 0)) is False


def test_scheduled_categories_have_no_free_regenerations():
    assert get_policy(ContentCategory.WEEKLY_FORECAST).free_regenerations == 0
    assert get_policy(ContentCategory.DAILY_FORECAST).free_regenerations == 0
    assert get_policy(ContentCategory.THREE_KEYS).free_regenerations == 1
    assert get_policy(ContentCategory.INTRO).free_regenerations == 1


def test_ledger_never_moves_backwards(make_profile):
    profile = make_profile()
    later = millis(2024, 6, 1, 12, 0)
    earlier = millis(2024, 6, 1, 11, 0)

    profile.stamp(ContentCategory.DAILY_FORECAST, later)
    profile.stamp(ContentCategory.DAILY_FORECAST, earlier)

    assert profile.last_generated(ContentCategory.DAILY_FORECAST) == later

    profile.stamp(ContentCategory.DAILY_FORECAST, later + 1)
    assert profile.last_generated(ContentCategory.DAILY_FORECAST) == later + 1
