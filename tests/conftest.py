"""
Pytest configuration and fixtures.
"""

import sys
import os
from datetime import date, datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional, Set

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Add app to path
sys.path.append(os.getcwd())

from app.database import Base, make_session_factory
import app.models  # noqa: F401
from app.content.bundle import ChartFacts, DailyForecast, Profile
from app.content.categories import DeepDiveTopic, OracleKind
from app.content.zodiac import ZodiacSign
from app.services.billing import ChargeOutcome
from app.services.chart_engine import ChartEngineError
from app.services.content_oracle import ContentOracleError
from app.services.profile_store import ProfilePersistenceError

# Use in-memory SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

# 2024-06-01 15:00 Moscow time
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def chart_payload(sun: str = "Pisces") -> Dict[str, Any]:
    """Chart Engine reply as it arrives over the wire."""
    return {
        "sun": {"sign": sun, "description": f"Sun in {sun}"},
        "moon": {"sign": "Cancer"},
        "rising": {"sign": "Virgo"},
        "mercury": {"sign": "Aquarius"},
        "venus": {"sign": "Aries"},
        "mars": {"sign": "Gemini"},
        "dominantElement": "Water",
        "rulingPlanet": "Neptune",
        "summary": "A sensitive, intuitive chart.",
    }


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class StubOracle:
    """Content Oracle double that records calls and can fail per kind or topic."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.fail_kinds: Set[OracleKind] = set()
        self.fail_topics: Set[DeepDiveTopic] = set()
        self.serial = 0

    def count(self, kind: Optional[OracleKind] = None) -> int:
        return len([c for c in self.calls if kind is None or c["kind"] is kind])

    async def generate(self, kind, user, chart, *, topic=None, partner=None, sign=None,
                       reference_date=None, language="en"):
        self.calls.append({
            "kind": kind,
            "user_id": user.user_id,
            "topic": topic,
            "partner": partner,
            "sign": sign,
            "reference_date": reference_date,
            "language": language,
        })
        if kind in self.fail_kinds or (topic is not None and topic in self.fail_topics):
            raise ContentOracleError(f"{kind.value} unavailable")

        self.serial += 1
        n = self.serial
        if kind is OracleKind.DAILY_FORECAST:
            return {
                "mood": "Bright",
                "color": "Gold",
                "number": 3,
                "content": f"{sign.value} forecast #{n}",
            }
        if kind is OracleKind.THREE_KEYS:
            return {
                key: {"title": key.upper(), "text": f"{key} insight #{n}", "advice": ["Breathe"]}
                for key in ("key1", "key2", "key3")
            }
        if kind is OracleKind.WEEKLY_FORECAST:
            return {"weekRange": str(reference_date), "theme": "Growth", "advice": f"weekly advice #{n}"}
        if kind is OracleKind.MONTHLY_FORECAST:
            return {"month": str(reference_date), "theme": "Focus", "focus": "Home", "content": f"monthly #{n}"}
        if kind is OracleKind.DEEP_DIVE:
            return f"{topic.value} analysis #{n}"
        if kind in (OracleKind.SYNASTRY_BRIEF, OracleKind.SYNASTRY_FULL):
            return {"score": 80, "summary": f"{kind.value} for {partner.name} #{n}"}
        return f"{kind.value} text #{n}"


class MemoryProfileStore:
    """Profile Store double keeping deep copies, like a real database would."""

    def __init__(self):
        self.profiles: Dict[str, Profile] = {}
        self.puts = 0
        self.fail_puts = False

    async def get(self, user_id: str) -> Optional[Profile]:
        profile = self.profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    async def put(self, profile: Profile) -> None:
        if self.fail_puts:
            raise ProfilePersistenceError("database unavailable")
        self.puts += 1
        self.profiles[profile.user_id] = profile.model_copy(deep=True)

    async def put_daily_forecast(self, user_id: str, forecast: DailyForecast, stamped_at: int) -> None:
        if self.fail_puts:
            raise ProfilePersistenceError("database unavailable")
        stored = self.profiles.get(user_id)
        if stored is None:
            return
        self.puts += 1
        stored.merge_daily_forecast(forecast.model_copy(deep=True), stamped_at)


class MemoryForecastStore:
    """Cross-user forecast store double."""

    def __init__(self):
        self.forecasts: Dict[Any, DailyForecast] = {}
        self.writes = 0
        self.fail_reads = False

    async def get(self, sign, reference_date, language):
        if self.fail_reads:
            raise ConnectionError("redis down")
        return self.forecasts.get((sign, reference_date, language))

    async def put(self, sign, reference_date, language, forecast):
        self.writes += 1
        self.forecasts[(sign, reference_date, language)] = forecast


class StubChartEngine:
    def __init__(self, sun: str = "Pisces"):
        self.sun = sun
        self.calls = 0
        self.fail = False

    async def compute_chart(self, name, birth_date, birth_time, birth_place, language):
        self.calls += 1
        if self.fail:
            raise ChartEngineError("chart engine down")
        return ChartFacts.model_validate(chart_payload(self.sun))


class StubBilling:
    def __init__(self, balance: int = 100):
        self.balance = balance
        self.charges: List[int] = []
        self.refunds: List[int] = []

    async def charge(self, user_id, amount, reason=""):
        if self.balance < amount:
            return ChargeOutcome.DENIED
        self.balance -= amount
        self.charges.append(amount)
        return ChargeOutcome.APPROVED

    async def refund(self, user_id, amount, reason=""):
        self.balance += amount
        self.refunds.append(amount)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create async engine for tests."""
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Commit-on-success session scope, as the stores use in production."""
    return make_session_factory(
        async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    )


@pytest_asyncio.fixture(scope="function")
async def db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for a test."""
    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def oracle():
    return StubOracle()


@pytest.fixture
def profile_store():
    return MemoryProfileStore()


@pytest.fixture
def forecast_store():
    return MemoryForecastStore()


@pytest.fixture
def chart_engine():
    return StubChartEngine()


@pytest.fixture
def billing():
    return StubBilling()


@pytest.fixture
def make_profile():
    """Factory for a charted profile without a bundle."""

    def factory(
        user_id: str = "1001",
        name: str = "Anna",
        birth_date: date = date(1989, 3, 6),
        sun_sign: ZodiacSign = ZodiacSign.PISCES,
        language: str = "en",
        is_premium: bool = False,
    ) -> Profile:
        return Profile(
            user_id=user_id,
            name=name,
            birth_date=birth_date,
            birth_time="14:30",
            birth_place="Moscow",
            language=language,
            is_premium=is_premium,
            sun_sign=sun_sign,
            chart=ChartFacts.model_validate(chart_payload(sun_sign.value)),
        )

    return factory
