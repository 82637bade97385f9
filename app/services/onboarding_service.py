"""
Onboarding Service - first setup of a user.

Validates birth facts, computes the chart once, saves the profile, then
waits for the initial bundle generation. This is the one foreground path:
the caller cannot proceed until it completes.
"""

import logging
from datetime import date
from typing import Optional, Union

from app.content.bundle import Profile
from app.content.zodiac import ZodiacSign, sun_sign_for_date
from app.services.chart_engine import ChartEngine
from app.services.generation_orchestrator import GenerationOrchestrator
from app.services.profile_store import ProfileStore
from app.services.validation import validate_birth_facts

logger = logging.getLogger(__name__)


class OnboardingService:
    """Chart computation plus initial content generation."""

    def __init__(
        self,
        chart_engine: ChartEngine,
        profile_store: ProfileStore,
        orchestrator: GenerationOrchestrator,
    ):
        self.chart_engine = chart_engine
        self.profile_store = profile_store
        self.orchestrator = orchestrator

    async def complete_setup(
        self,
        user_id: str,
        name: str,
        birth_date: Union[date, str],
        birth_time: Optional[str],
        birth_place: str,
        language: str,
        is_premium: Optional[bool] = None,
    ) -> Profile:
        """
        Create or finish a user's profile.

        Raises:
            InputValidationError: invalid birth facts (nothing is called)
            ChartEngineError: the chart could not be computed
            ProfilePersistenceError: the profile could not be saved
        """
        facts = validate_birth_facts(name, birth_date, birth_time, birth_place, language)

        profile = await self.profile_store.get(user_id)
        if profile is None:
            profile = Profile(
                user_id=user_id,
                name=facts.name,
                birth_date=facts.birth_date,
                birth_time=facts.birth_time,
                birth_place=facts.birth_place,
                language=facts.language,
            )
            logger.info(f"Creating profile for {user_id}")
        else:
            # Birth facts are frozen once a chart exists
            profile.name = facts.name
            profile.language = facts.language

        if is_premium is not None:
            profile.is_premium = is_premium

        if profile.chart is None:
            profile.chart = await self.chart_engine.compute_chart(
                facts.name,
                facts.birth_date,
                facts.birth_time,
                facts.birth_place,
                facts.language,
            )
            profile.sun_sign = sun_sign_for_date(facts.birth_date)

            engine_sign = ZodiacSign.parse(profile.chart.sun.sign)
            if engine_sign is not None and engine_sign is not profile.sun_sign:
                logger.warning(
                    f"Chart engine sun sign {engine_sign.value} differs from date bucket "
                    f"{profile.sun_sign.value} for {user_id} (cusp birthday)"
                )

            # Critical path: the user has no bundle to fall back on
            await self.profile_store.put(profile)

        pending = self.orchestrator.pending_initial_categories(profile)
        if pending:
            await self.orchestrator.generate_all(profile, pending)

        return profile
