"""
Generation Orchestrator - first-time fill of a user's content bundle.

Runs once per user, right after the chart is computed, and again for any
initial category the ledger shows was never generated. Every category is
generated concurrently; a failed category gets localized fallback content
and never aborts its siblings.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ValidationError

from app.content.bundle import ContentBundle, MonthlyForecast, Profile, ThreeKeys, WeeklyForecast
from app.content.categories import (
    ContentCategory,
    DeepDiveTopic,
    RefreshKind,
    POLICY_TABLE,
    get_policy,
)
from app.content.fallbacks import fallback_content, fallback_text
from app.content.reference_day import reference_day, to_epoch_millis, utc_now
from app.content.zodiac import sun_sign_for_date
from app.services.content_oracle import ContentOracle, ContentOracleError, OracleResult
from app.services.freshness_policy import is_due, period_start
from app.services.horoscope_cache import SharedHoroscopeCache, forecast_from_payload
from app.services.profile_store import ProfilePersistenceError, ProfileStore

logger = logging.getLogger(__name__)

# Categories filled at onboarding. Paid-only content is never generated here.
INITIAL_CATEGORIES: List[ContentCategory] = [
    ContentCategory.INTRO,
    ContentCategory.THREE_KEYS,
    ContentCategory.DAILY_FORECAST,
    ContentCategory.WEEKLY_FORECAST,
    ContentCategory.MONTHLY_FORECAST,
    *(topic.category for topic in DeepDiveTopic),
]

PERIODIC_CATEGORIES = (ContentCategory.WEEKLY_FORECAST, ContentCategory.MONTHLY_FORECAST)

STRUCTURED_MODELS: Dict[ContentCategory, type] = {
    ContentCategory.THREE_KEYS: ThreeKeys,
    ContentCategory.WEEKLY_FORECAST: WeeklyForecast,
    ContentCategory.MONTHLY_FORECAST: MonthlyForecast,
}


def category_period(category: ContentCategory, today: date) -> date:
    return period_start(get_policy(category).kind, today)


def content_from_result(category: ContentCategory, result: OracleResult, period: date) -> Any:
    """
    Validate an oracle result into the bundle shape of its category.

    Raises:
        ContentOracleError: the result is empty or has the wrong shape
    """
    if category is ContentCategory.DAILY_FORECAST:
        if not isinstance(result, dict):
            raise ContentOracleError("Daily forecast must be a structured payload")
        return forecast_from_payload(result, period)

    model = STRUCTURED_MODELS.get(category)
    if model is None:
        if not isinstance(result, str) or not result.strip():
            raise ContentOracleError(f"{category.value} returned no text")
        return result.strip()

    if not isinstance(result, dict):
        raise ContentOracleError(f"{category.value} must be a structured payload")
    data = dict(result)
    if model is WeeklyForecast:
        data["weekStart"] = period
    elif model is MonthlyForecast:
        data["monthStart"] = period
    try:
        content: BaseModel = model.model_validate(data)
    except ValidationError as e:
        raise ContentOracleError(f"Malformed {category.value} payload: {e}") from e
    return content


async def generate_category(
    oracle: ContentOracle,
    profile: Profile,
    category: ContentCategory,
    today: date,
) -> Any:
    """One oracle call for one category of one user, validated."""
    period = category_period(category, today)
    result = await oracle.generate(
        category.oracle_kind,
        profile.user_facts,
        profile.chart,
        topic=category.deep_dive_topic,
        sign=profile.sun_sign or sun_sign_for_date(profile.birth_date),
        reference_date=period,
        language=profile.language,
    )
    return content_from_result(category, result, period)


class GenerationOrchestrator:
    """Fan-out generation of a complete bundle, plus lazy scheduled refresh."""

    def __init__(
        self,
        oracle: ContentOracle,
        profile_store: ProfileStore,
        horoscope_cache: Optional[SharedHoroscopeCache] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.oracle = oracle
        self.profile_store = profile_store
        self.horoscope_cache = horoscope_cache
        self.clock = clock

    async def generate_all(
        self,
        profile: Profile,
        categories: Optional[Iterable[ContentCategory]] = None,
    ) -> ContentBundle:
        """
        Generate every initial category (or the given subset) and persist the bundle.

        Returns the bundle even if the save failed; the caller continues with
        the in-memory copy. Content of categories not generated here, partner
        memos included, is kept.
        """
        if profile.chart is None:
            raise ValueError(f"Profile {profile.user_id} has no chart; compute it first")

        categories = list(INITIAL_CATEGORIES if categories is None else categories)
        started = self.clock()
        today = reference_day(started)

        results = await asyncio.gather(
            *(self._generate_category(profile, category, today) for category in categories)
        )

        bundle = profile.bundle.model_copy(deep=True) if profile.bundle is not None else ContentBundle()

        stamped_at = to_epoch_millis(self.clock())
        failed: List[str] = []
        for category, content, is_fallback in results:
            bundle.set_content(category, content, fallback=is_fallback)
            profile.stamp(category, stamped_at)
            if is_fallback:
                failed.append(category.value)

        profile.bundle = bundle

        elapsed_ms = stamped_at - to_epoch_millis(started)
        logger.info(
            f"Generated bundle for {profile.user_id} in {elapsed_ms}ms: "
            f"{len(results) - len(failed)}/{len(results)} ok"
            + (f", fallback for {', '.join(failed)}" if failed else ""),
            extra={"context": {"user_id": profile.user_id, "elapsed_ms": elapsed_ms, "fallbacks": failed}},
        )

        try:
            await self.profile_store.put(profile)
        except ProfilePersistenceError as e:
            logger.error(f"Failed to save generated bundle for {profile.user_id}: {e}")

        return bundle

    def pending_initial_categories(self, profile: Profile) -> List[ContentCategory]:
        """
        Initial categories still to generate while the first fill is incomplete.

        The fill is complete once every one-time initial category is in the
        ledger, whatever the bundle holds. Until then the result lists every
        initial category that is due; afterwards it is empty.
        """
        now = self.clock()
        due = [c for c in INITIAL_CATEGORIES if is_due(c, profile.last_generated(c), now)]
        if any(get_policy(c).kind is RefreshKind.ONE_TIME for c in due):
            return due
        return []

    async def _generate_category(
        self,
        profile: Profile,
        category: ContentCategory,
        today: date,
    ) -> Tuple[ContentCategory, Any, bool]:
        """Generate one category; (category, content, is_fallback)."""
        try:
            content = await generate_category(self.oracle, profile, category, today)
            return category, content, False
        except ContentOracleError as e:
            logger.warning(f"{category.value} generation failed for {profile.user_id}: {e}")
        except Exception as e:
            logger.error(f"Unexpected error generating {category.value} for {profile.user_id}: {e}", exc_info=True)

        return category, fallback_content(category, category_period(category, today), profile.language), True

    async def get_or_generate_deep_dive(self, profile: Profile, topic: DeepDiveTopic) -> str:
        """
        Cached deep-dive text for a topic, generated only if it never was.

        Oracle failures propagate; nothing is cached on failure.
        """
        category = topic.category
        bundle = profile.ensure_bundle()

        cached = bundle.deep_dive.get(topic)
        if cached:
            return cached

        if not is_due(category, profile.last_generated(category), self.clock()):
            # Stamped but the text is gone; only a regeneration may call the oracle again
            logger.warning(f"Deep dive {topic.value} stamped but missing for {profile.user_id}")
            return fallback_text(category, profile.language)

        today = reference_day(self.clock())
        text = await generate_category(self.oracle, profile, category, today)
        bundle.set_content(category, text)
        profile.stamp(category, to_epoch_millis(self.clock()))

        try:
            await self.profile_store.put(profile)
        except ProfilePersistenceError as e:
            logger.warning(f"Failed to save deep dive {topic.value} for {profile.user_id}: {e}")

        return text

    async def get_or_generate_horoscope(self, profile: Profile, category: ContentCategory) -> Any:
        """
        Weekly or monthly forecast, regenerated once its reference period rolls over.

        Fallback content is retried on every access. A failed refresh keeps
        showing whatever the bundle already holds.
        """
        if category not in PERIODIC_CATEGORIES:
            raise ValueError(f"{category.value} is not a periodic horoscope")

        bundle = profile.ensure_bundle()
        current = bundle.get_content(category)
        if (
            current is not None
            and not bundle.is_fallback(category)
            and not is_due(category, profile.last_generated(category), self.clock())
        ):
            return current
        return await self._refresh_periodic(profile, category)

    async def _refresh_periodic(self, profile: Profile, category: ContentCategory) -> Any:
        now = self.clock()
        today = reference_day(now)
        bundle = profile.ensure_bundle()

        try:
            content = await generate_category(self.oracle, profile, category, today)
        except ContentOracleError as e:
            logger.warning(f"{category.value} refresh failed for {profile.user_id}: {e}")
            current = bundle.get_content(category)
            if current is not None:
                return current
            return fallback_content(category, category_period(category, today), profile.language)

        bundle.set_content(category, content)
        profile.stamp(category, to_epoch_millis(now))
        logger.info(f"Refreshed {category.value} for {profile.user_id}")

        try:
            await self.profile_store.put(profile)
        except ProfilePersistenceError as e:
            logger.warning(f"Failed to save {category.value} for {profile.user_id}: {e}")

        return content

    async def refresh_if_due(self, profile: Profile) -> ContentBundle:
        """
        Lazily bring a bundle up to date on a user-triggered access.

        An incomplete initial fill is finished first and the call returns, so
        a scheduled refresh never races an in-progress fill.
        """
        pending = self.pending_initial_categories(profile)
        if pending:
            logger.info(
                f"Initial fill incomplete for {profile.user_id}, generating "
                f"{', '.join(category.value for category in pending)}"
            )
            return await self.generate_all(profile, pending)

        now = self.clock()
        refreshers: Dict[ContentCategory, Callable[[Profile], Any]] = {
            category: self._periodic_refresher(category) for category in PERIODIC_CATEGORIES
        }
        if self.horoscope_cache is not None:
            refreshers[ContentCategory.DAILY_FORECAST] = self.horoscope_cache.get_or_generate

        for category, policy in POLICY_TABLE.items():
            if not policy.kind.is_scheduled:
                continue
            if not is_due(category, profile.last_generated(category), now):
                continue
            refresher = refreshers.get(category)
            if refresher is None:
                logger.debug(f"No refresher wired for {category.value}")
                continue
            await refresher(profile)

        return profile.bundle

    def _periodic_refresher(self, category: ContentCategory) -> Callable[[Profile], Any]:
        async def refresh(profile: Profile) -> Any:
            return await self._refresh_periodic(profile, category)

        return refresh
