"""
FastAPI dependencies: service wiring and the acting user.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from app.config import settings
from app.database import SessionFactory, async_session_maker, make_session_factory
from app.redis import RedisClient
from app.services.billing import StarsBalanceBilling
from app.services.chart_engine import HttpChartEngine
from app.services.content_oracle import OpenAIContentOracle
from app.services.generation_orchestrator import GenerationOrchestrator
from app.services.horoscope_cache import (
    ForecastStore,
    RedisForecastStore,
    SharedHoroscopeCache,
    SqlForecastStore,
)
from app.services.onboarding_service import OnboardingService
from app.services.partner_memo_cache import PartnerMemoCache
from app.services.profile_store import SqlProfileStore
from app.services.regeneration_gate import RegenerationGate


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """The acting user (Telegram ID)."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id.strip()


def get_session_factory() -> SessionFactory:
    if not async_session_maker:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not configured",
        )
    return make_session_factory(async_session_maker)


@lru_cache
def get_oracle() -> OpenAIContentOracle:
    return OpenAIContentOracle()


@lru_cache
def get_chart_engine() -> HttpChartEngine:
    return HttpChartEngine()


def get_profile_store(
    session_factory: SessionFactory = Depends(get_session_factory),
) -> SqlProfileStore:
    return SqlProfileStore(session_factory)


def get_forecast_store(
    session_factory: SessionFactory = Depends(get_session_factory),
) -> ForecastStore:
    if settings.forecast_cache_backend == "redis":
        return RedisForecastStore(RedisClient.get_client())
    return SqlForecastStore(session_factory)


def get_horoscope_cache(
    oracle: OpenAIContentOracle = Depends(get_oracle),
    forecast_store: ForecastStore = Depends(get_forecast_store),
    profile_store: SqlProfileStore = Depends(get_profile_store),
) -> SharedHoroscopeCache:
    return SharedHoroscopeCache(oracle, forecast_store, profile_store)


def get_orchestrator(
    oracle: OpenAIContentOracle = Depends(get_oracle),
    profile_store: SqlProfileStore = Depends(get_profile_store),
    horoscope_cache: SharedHoroscopeCache = Depends(get_horoscope_cache),
) -> GenerationOrchestrator:
    return GenerationOrchestrator(oracle, profile_store, horoscope_cache)


def get_memo_cache(
    oracle: OpenAIContentOracle = Depends(get_oracle),
    profile_store: SqlProfileStore = Depends(get_profile_store),
) -> PartnerMemoCache:
    return PartnerMemoCache(oracle, profile_store)


def get_regeneration_gate(
    oracle: OpenAIContentOracle = Depends(get_oracle),
    profile_store: SqlProfileStore = Depends(get_profile_store),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> RegenerationGate:
    return RegenerationGate(oracle, profile_store, StarsBalanceBilling(session_factory))


def get_onboarding_service(
    chart_engine: HttpChartEngine = Depends(get_chart_engine),
    profile_store: SqlProfileStore = Depends(get_profile_store),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> OnboardingService:
    return OnboardingService(chart_engine, profile_store, orchestrator)
