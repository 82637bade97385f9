"""
Shared Horoscope Cache - one daily forecast per (sign, reference day).

Lookup order for a user:
1. The user's own bundle, if it already holds today's forecast
2. The cross-user store for (sign, today, language)
3. The Content Oracle, writing the result to both

Consistency: the cross-user store has no lock. Two users of the same sign
arriving together may both miss and both call the oracle; the later write
overwrites the earlier one. Duplicate work is accepted, wrong content is not
possible since both payloads are valid forecasts for that sign and day.
"""

import json
import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Optional, Protocol

from pydantic import ValidationError
from redis.asyncio.client import Redis
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.config import settings
from app.content.bundle import DailyForecast, Profile
from app.content.categories import ContentCategory, OracleKind
from app.content.fallbacks import fallback_forecast
from app.content.reference_day import reference_day, to_epoch_millis, utc_now
from app.content.zodiac import ZodiacSign, sun_sign_for_date
from app.database import SessionFactory
from app.models.forecast_cache import DailyForecastCache
from app.redis import make_key
from app.services.background import fire_and_forget
from app.services.content_oracle import ContentOracle, ContentOracleError
from app.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)

PROMPT_VERSION = "v1"


def forecast_from_payload(payload: Dict[str, Any], reference_date: date) -> DailyForecast:
    """Validate an oracle payload; the reference day always comes from us."""
    data = dict(payload)
    data["date"] = reference_date
    data.pop("reference_date", None)
    try:
        forecast = DailyForecast.model_validate(data)
    except ValidationError as e:
        raise ContentOracleError(f"Malformed daily forecast payload: {e}") from e
    if not forecast.content.strip():
        raise ContentOracleError("Daily forecast payload has no content")
    return forecast


class ForecastStore(Protocol):
    """Cross-user forecast store. Eventually consistent, last write wins."""

    async def get(self, sign: ZodiacSign, reference_date: date, language: str) -> Optional[DailyForecast]:
        ...

    async def put(self, sign: ZodiacSign, reference_date: date, language: str, forecast: DailyForecast) -> None:
        ...


class RedisForecastStore:
    """Forecasts under astra:forecast:{sign}:{date}:{lang} with a TTL."""

    def __init__(self, redis: Redis, ttl_hours: Optional[int] = None):
        self.redis = redis
        self.ttl = timedelta(hours=ttl_hours or settings.forecast_cache_ttl_hours)

    @staticmethod
    def key(sign: ZodiacSign, reference_date: date, language: str) -> str:
        return make_key("forecast", sign.name, reference_date.isoformat(), language)

    async def get(self, sign: ZodiacSign, reference_date: date, language: str) -> Optional[DailyForecast]:
        raw = await self.redis.get(self.key(sign, reference_date, language))
        if not raw:
            return None
        return DailyForecast.model_validate(json.loads(raw))

    async def put(self, sign: ZodiacSign, reference_date: date, language: str, forecast: DailyForecast) -> None:
        await self.redis.setex(
            self.key(sign, reference_date, language),
            int(self.ttl.total_seconds()),
            forecast.model_dump_json(by_alias=True),
        )


class SqlForecastStore:
    """Forecasts in the daily_forecast_cache table."""

    def __init__(self, session_factory: SessionFactory, model: Optional[str] = None):
        self.session_factory = session_factory
        self.model = model or settings.openai_model

    async def get(self, sign: ZodiacSign, reference_date: date, language: str) -> Optional[DailyForecast]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DailyForecastCache)
                .where(DailyForecastCache.sign == sign.value)
                .where(DailyForecastCache.reference_date == reference_date)
                .where(DailyForecastCache.language == language)
            )
            row = result.scalar_one_or_none()
            return DailyForecast.model_validate(row.payload) if row else None

    async def put(self, sign: ZodiacSign, reference_date: date, language: str, forecast: DailyForecast) -> None:
        payload = forecast.model_dump(mode="json", by_alias=True)
        try:
            await self._upsert(sign, reference_date, language, payload)
        except IntegrityError:
            # Another writer inserted the same key first; overwrite it
            logger.info(f"Forecast for {sign.value} {reference_date} written concurrently, overwriting")
            await self._upsert(sign, reference_date, language, payload)

    async def _upsert(self, sign: ZodiacSign, reference_date: date, language: str, payload: Dict[str, Any]) -> None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DailyForecastCache)
                .where(DailyForecastCache.sign == sign.value)
                .where(DailyForecastCache.reference_date == reference_date)
                .where(DailyForecastCache.language == language)
            )
            row = result.scalar_one_or_none()
            if row is None:
                session.add(DailyForecastCache(
                    sign=sign.value,
                    reference_date=reference_date,
                    language=language,
                    payload=payload,
                    model=self.model,
                    prompt_version=PROMPT_VERSION,
                ))
            else:
                row.payload = payload
                row.model = self.model
            await session.flush()


class SharedHoroscopeCache:
    """Daily forecast lookup with a per-user fast path and a cross-user store."""

    def __init__(
        self,
        oracle: ContentOracle,
        forecast_store: ForecastStore,
        profile_store: ProfileStore,
        clock: Callable[[], datetime] = utc_now,
        persist_in_background: bool = True,
    ):
        self.oracle = oracle
        self.forecast_store = forecast_store
        self.profile_store = profile_store
        self.clock = clock
        self.persist_in_background = persist_in_background

    async def get_or_generate(self, profile: Profile) -> DailyForecast:
        """Today's forecast for the user's sign, mutating the profile's bundle on refresh."""
        now = self.clock()
        today = reference_day(now)
        sign = profile.sun_sign or sun_sign_for_date(profile.birth_date)
        language = profile.language

        cached = self._own_forecast(profile, today)
        if cached is not None:
            return cached

        shared = await self._read_shared(sign, today, language)
        if shared is not None:
            logger.info(f"Shared forecast hit for {sign.value} {today} ({profile.user_id})")
            await self._adopt(profile, shared, now)
            return shared

        logger.info(
            f"Shared forecast miss for {sign.value} {today}, generating",
            extra={"context": {"sign": sign.value, "reference_date": today.isoformat(), "language": language}},
        )
        try:
            payload = await self.oracle.generate(
                OracleKind.DAILY_FORECAST,
                profile.user_facts,
                profile.chart,
                sign=sign,
                reference_date=today,
                language=language,
            )
            if not isinstance(payload, dict):
                raise ContentOracleError("Daily forecast must be a structured payload")
            forecast = forecast_from_payload(payload, today)
        except ContentOracleError as e:
            logger.warning(f"Daily forecast generation failed for {sign.value}: {e}")
            return self._last_good_or_fallback(profile, today)

        try:
            await self.forecast_store.put(sign, today, language, forecast)
        except Exception as e:
            logger.warning(f"Shared forecast write failed for {sign.value} {today}: {e}")

        await self._adopt(profile, forecast, now)
        return forecast

    @staticmethod
    def _own_forecast(profile: Profile, today: date) -> Optional[DailyForecast]:
        bundle = profile.bundle
        if bundle is None or bundle.daily_forecast is None:
            return None
        if bundle.is_fallback(ContentCategory.DAILY_FORECAST):
            return None
        forecast = bundle.daily_forecast
        if forecast.reference_date != today or not forecast.content.strip():
            return None
        return forecast

    async def _read_shared(self, sign: ZodiacSign, today: date, language: str) -> Optional[DailyForecast]:
        try:
            return await self.forecast_store.get(sign, today, language)
        except Exception as e:
            logger.warning(f"Shared forecast read failed for {sign.value} {today}: {e}")
            return None

    @staticmethod
    def _last_good_or_fallback(profile: Profile, today: date) -> DailyForecast:
        """Passive refresh failures are invisible: keep showing the last good forecast."""
        bundle = profile.bundle
        if (
            bundle is not None
            and bundle.daily_forecast is not None
            and not bundle.is_fallback(ContentCategory.DAILY_FORECAST)
        ):
            return bundle.daily_forecast
        return fallback_forecast(today, profile.language)

    async def _adopt(self, profile: Profile, forecast: DailyForecast, now: datetime) -> None:
        """Put the forecast in the user's bundle and persist only that slice."""
        stamped_at = to_epoch_millis(now)
        profile.merge_daily_forecast(forecast, stamped_at)

        save = self.profile_store.put_daily_forecast(profile.user_id, forecast, stamped_at)
        if self.persist_in_background:
            fire_and_forget(save, f"forecast save for {profile.user_id}")
            return
        try:
            await save
        except Exception as e:
            logger.warning(f"Forecast save failed for {profile.user_id}: {e}")
