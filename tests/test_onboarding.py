"""
Tests for OnboardingService.
"""

from datetime import date

import pytest

from app.content.categories import ContentCategory, DeepDiveTopic, OracleKind
from app.content.zodiac import ZodiacSign
from app.services.chart_engine import ChartEngineError
from app.services.generation_orchestrator import INITIAL_CATEGORIES, GenerationOrchestrator
from app.services.horoscope_cache import SharedHoroscopeCache
from app.services.onboarding_service import OnboardingService
from app.services.profile_store import ProfilePersistenceError
from app.services.validation import InputValidationError


@pytest.fixture
def onboarding(chart_engine, oracle, profile_store, clock):
    orchestrator = GenerationOrchestrator(oracle, profile_store, clock=clock)
    return OnboardingService(chart_engine, profile_store, orchestrator)


@pytest.mark.asyncio
async def test_first_setup_computes_chart_and_bundle(onboarding, chart_engine, oracle, profile_store):
    """A new user born 1989-03-06 lands in the Pisces bucket with a full bundle."""
    profile = await onboarding.complete_setup(
        "42", "Anna", "1989-03-06", "14:30", "Moscow", "ru"
    )

    assert chart_engine.calls == 1
    assert profile.sun_sign is ZodiacSign.PISCES
    assert profile.birth_date == date(1989, 3, 6)
    assert profile.bundle.intro_text
    assert profile.bundle.daily_forecast is not None
    assert set(profile.bundle.deep_dive) == set(DeepDiveTopic)
    assert oracle.count() == 10
    assert all(call["language"] == "ru" for call in oracle.calls)

    stored = profile_store.profiles["42"]
    assert stored.chart == profile.chart
    assert stored.bundle == profile.bundle


@pytest.mark.asyncio
async def test_repeat_setup_reuses_chart_and_bundle(onboarding, chart_engine, oracle):
    await onboarding.complete_setup("42", "Anna", "1989-03-06", None, "Moscow", "en")
    profile = await onboarding.complete_setup("42", "Anna", "1989-03-06", None, "Moscow", "en")

    assert chart_engine.calls == 1
    assert oracle.count() == 10
    assert profile.bundle is not None


@pytest.mark.asyncio
async def test_setup_retries_generation_when_bundle_missing(onboarding, chart_engine, oracle, profile_store):
    """A crash between the chart save and the bundle save is repaired on retry."""
    first = await onboarding.complete_setup("42", "Anna", "1989-03-06", None, "Moscow", "en")
    stored = profile_store.profiles["42"]
    stored.bundle = None
    stored.timestamps = {}

    profile = await onboarding.complete_setup("42", "Anna", "1989-03-06", None, "Moscow", "en")

    assert chart_engine.calls == 1
    assert oracle.count() == 20
    assert profile.chart == first.chart


@pytest.mark.asyncio
async def test_cusp_mismatch_keeps_date_bucket(onboarding, chart_engine):
    chart_engine.sun = "Aries"

    profile = await onboarding.complete_setup("42", "Anna", "1990-03-20", None, "Moscow", "en")

    assert profile.sun_sign is ZodiacSign.PISCES
    assert profile.chart.sun.sign == "Aries"


@pytest.mark.asyncio
async def test_invalid_input_calls_nothing(onboarding, chart_engine, oracle, profile_store):
    with pytest.raises(InputValidationError) as exc_info:
        await onboarding.complete_setup("42", "A", "1989-13-40", "9am", "", "de")

    fields = {error.field for error in exc_info.value.errors}
    assert fields == {"name", "birth_date", "birth_time", "birth_place", "language"}
    assert chart_engine.calls == 0
    assert oracle.count() == 0
    assert profile_store.puts == 0


@pytest.mark.asyncio
async def test_chart_engine_failure_propagates(onboarding, chart_engine, oracle, profile_store):
    chart_engine.fail = True

    with pytest.raises(ChartEngineError):
        await onboarding.complete_setup("42", "Anna", "1989-03-06", None, "Moscow", "en")

    assert oracle.count() == 0
    assert profile_store.profiles == {}


@pytest.mark.asyncio
async def test_first_profile_save_failure_propagates(onboarding, oracle, profile_store):
    profile_store.fail_puts = True

    with pytest.raises(ProfilePersistenceError):
        await onboarding.complete_setup("42", "Anna", "1989-03-06", None, "Moscow", "en")

    assert oracle.count() == 0


@pytest.mark.asyncio
async def test_setup_retry_finishes_fill_after_daily_horoscope(
    onboarding, chart_engine, oracle, profile_store, forecast_store, make_profile, clock
):
    """The chart was saved but the bundle save was lost; the user opened the daily horoscope before retrying."""
    await profile_store.put(make_profile(user_id="42"))
    cache = SharedHoroscopeCache(
        oracle, forecast_store, profile_store, clock=clock, persist_in_background=False
    )
    await cache.get_or_generate(await profile_store.get("42"))

    profile = await onboarding.complete_setup("42", "Anna", "1989-03-06", None, "Moscow", "en")

    assert chart_engine.calls == 0
    assert profile.bundle.intro_text.startswith("intro text")
    assert set(profile.bundle.deep_dive) == set(DeepDiveTopic)
    assert profile.last_generated(ContentCategory.INTRO) is not None
    assert oracle.count(OracleKind.DAILY_FORECAST) == 1
    assert oracle.count() == len(INITIAL_CATEGORIES)
    assert profile_store.profiles["42"].bundle.intro_text == profile.bundle.intro_text
