"""
Tests for the SQL-backed profile store and stars billing.
"""

from datetime import date

import pytest
from sqlalchemy import select

from app.content.bundle import ContentBundle, DailyForecast
from app.content.categories import ContentCategory, DeepDiveTopic
from app.content.zodiac import ZodiacSign
from app.models.profile import UserProfile
from app.models.stars_transaction import StarsTransaction
from app.services.billing import ChargeOutcome, StarsBalanceBilling
from app.services.profile_store import ProfileNotFoundError, SqlProfileStore, require_profile


@pytest.mark.asyncio
async def test_profile_round_trip(session_factory, make_profile):
    store = SqlProfileStore(session_factory)
    profile = make_profile(user_id="7", is_premium=True)
    bundle = profile.ensure_bundle()
    bundle.intro_text = "Hello"
    bundle.daily_forecast = DailyForecast(reference_date=date(2024, 6, 1), content="Calm day")
    bundle.set_content(DeepDiveTopic.LOVE.category, "Love text", fallback=True)
    profile.stamp(ContentCategory.INTRO, 1717243200000)
    profile.regeneration_entry(ContentCategory.INTRO).free_uses.append(1717243200000)

    await store.put(profile)
    loaded = await store.get("7")

    assert loaded == profile
    assert loaded.sun_sign is ZodiacSign.PISCES
    assert loaded.bundle.is_fallback(DeepDiveTopic.LOVE.category)
    assert loaded.last_generated(ContentCategory.INTRO) == 1717243200000


@pytest.mark.asyncio
async def test_put_replaces_bundle(session_factory, make_profile):
    store = SqlProfileStore(session_factory)
    profile = make_profile(user_id="7")
    profile.bundle = ContentBundle(intro_text="old")
    await store.put(profile)

    profile.bundle = ContentBundle(intro_text="new")
    await store.put(profile)

    assert (await store.get("7")).bundle.intro_text == "new"


@pytest.mark.asyncio
async def test_missing_profile(session_factory):
    store = SqlProfileStore(session_factory)

    assert await store.get("nobody") is None
    with pytest.raises(ProfileNotFoundError):
        await require_profile(store, "nobody")


@pytest.mark.asyncio
async def test_put_leaves_stars_balance_alone(session_factory, make_profile):
    store = SqlProfileStore(session_factory)
    profile = make_profile(user_id="7")
    await store.put(profile)

    billing = StarsBalanceBilling(session_factory)
    await billing.refund("7", 80, reason="top-up")
    await store.put(profile)

    assert await billing.get_balance("7") == 80


@pytest.mark.asyncio
async def test_charge_and_refund(session_factory, db, make_profile):
    await SqlProfileStore(session_factory).put(make_profile(user_id="7"))
    billing = StarsBalanceBilling(session_factory)
    await billing.refund("7", 100, reason="top-up")

    assert await billing.charge("7", 50, reason="regenerate:intro") is ChargeOutcome.APPROVED
    assert await billing.get_balance("7") == 50

    assert await billing.charge("7", 60, reason="regenerate:intro") is ChargeOutcome.DENIED
    assert await billing.get_balance("7") == 50

    await billing.refund("7", 50, reason="refund:intro")
    assert await billing.get_balance("7") == 100

    result = await db.execute(
        select(StarsTransaction.amount).where(StarsTransaction.user_id == "7")
    )
    assert sorted(result.scalars().all()) == [-50, 50, 100]


@pytest.mark.asyncio
async def test_charge_unknown_user_is_denied(session_factory):
    billing = StarsBalanceBilling(session_factory)

    assert await billing.charge("nobody", 50) is ChargeOutcome.DENIED
    assert await billing.get_balance("nobody") == 0


@pytest.mark.asyncio
async def test_new_profile_starts_with_zero_balance(session_factory, db, make_profile):
    await SqlProfileStore(session_factory).put(make_profile(user_id="7"))

    row = (await db.execute(select(UserProfile).where(UserProfile.user_id == "7"))).scalar_one()
    assert row.stars_balance == 0
    assert row.sun_sign == "Pisces"


@pytest.mark.asyncio
async def test_put_daily_forecast_merges_only_the_daily_slice(session_factory, make_profile):
    store = SqlProfileStore(session_factory)
    profile = make_profile(user_id="7")
    profile.bundle = ContentBundle(intro_text="regenerated")
    profile.stamp(ContentCategory.DAILY_FORECAST, 1717243200000)
    profile.regeneration_entry(ContentCategory.INTRO).paid_count = 1
    await store.put(profile)

    forecast = DailyForecast(reference_date=date(2024, 6, 1), content="Calm day")
    await store.put_daily_forecast("7", forecast, 1717243100000)

    loaded = await store.get("7")
    assert loaded.bundle.daily_forecast == forecast
    assert loaded.bundle.intro_text == "regenerated"
    assert loaded.regenerations[ContentCategory.INTRO].paid_count == 1
    # The ledger never moves backwards
    assert loaded.last_generated(ContentCategory.DAILY_FORECAST) == 1717243200000


@pytest.mark.asyncio
async def test_put_daily_forecast_keeps_a_newer_day(session_factory, make_profile):
    store = SqlProfileStore(session_factory)
    await store.put(make_profile(user_id="7"))
    newer = DailyForecast(reference_date=date(2024, 6, 2), content="Sunday")

    await store.put_daily_forecast("7", newer, 1717329600000)
    await store.put_daily_forecast("7", DailyForecast(reference_date=date(2024, 6, 1), content="Saturday"), 1717243200000)

    assert (await store.get("7")).bundle.daily_forecast == newer


@pytest.mark.asyncio
async def test_put_daily_forecast_unknown_user_is_skipped(session_factory):
    store = SqlProfileStore(session_factory)

    await store.put_daily_forecast("nobody", DailyForecast(reference_date=date(2024, 6, 1), content="x"), 1)

    assert await store.get("nobody") is None
