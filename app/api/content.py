"""
Content API - onboarding, dashboard content, horoscopes, deep dives, synastry, regeneration.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.content.bundle import ContentBundle
from app.content.categories import ContentCategory, DeepDiveTopic, MemoMode
from app.services.generation_orchestrator import GenerationOrchestrator
from app.services.horoscope_cache import SharedHoroscopeCache
from app.services.onboarding_service import OnboardingService
from app.services.partner_memo_cache import PartnerMemoCache
from app.services.profile_store import SqlProfileStore, require_profile
from app.services.regeneration_gate import RegenerationGate
from app.api.deps import (
    get_current_user_id,
    get_horoscope_cache,
    get_memo_cache,
    get_onboarding_service,
    get_orchestrator,
    get_profile_store,
    get_regeneration_gate,
)

router = APIRouter(prefix="/api", tags=["Content"])
logger = logging.getLogger(__name__)


class OnboardingRequest(BaseModel):
    name: str
    birth_date: str
    birth_time: Optional[str] = None
    birth_place: str
    language: str = "en"


class SynastryRequest(BaseModel):
    partner_name: str
    partner_date: str
    partner_time: Optional[str] = None
    partner_place: Optional[str] = None
    relationship_type: Optional[str] = None


class RegenerateRequest(BaseModel):
    category: ContentCategory
    accept_paid: bool = False


def _bundle_json(bundle: Optional[ContentBundle]) -> Optional[Dict[str, Any]]:
    return bundle.model_dump(mode="json", by_alias=True) if bundle else None


@router.post("/onboarding")
async def complete_onboarding(
    request: OnboardingRequest,
    user_id: str = Depends(get_current_user_id),
    onboarding: OnboardingService = Depends(get_onboarding_service),
):
    """
    First setup: compute the chart and generate the full bundle.

    Blocks until generation completes; failures are retryable.
    """
    profile = await onboarding.complete_setup(
        user_id,
        request.name,
        request.birth_date,
        request.birth_time,
        request.birth_place,
        request.language,
    )
    return {
        "status": "success",
        "sun_sign": profile.sun_sign.value if profile.sun_sign else None,
        "chart": profile.chart.model_dump(mode="json", by_alias=True) if profile.chart else None,
        "bundle": _bundle_json(profile.bundle),
    }


@router.get("/content")
async def get_content(
    user_id: str = Depends(get_current_user_id),
    store: SqlProfileStore = Depends(get_profile_store),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Dashboard view: the bundle, refreshed lazily where due."""
    profile = await require_profile(store, user_id)
    bundle = await orchestrator.refresh_if_due(profile)
    return {"status": "success", "bundle": _bundle_json(bundle)}


@router.get("/horoscope/daily")
async def get_daily_horoscope(
    user_id: str = Depends(get_current_user_id),
    store: SqlProfileStore = Depends(get_profile_store),
    horoscope_cache: SharedHoroscopeCache = Depends(get_horoscope_cache),
):
    profile = await require_profile(store, user_id)
    forecast = await horoscope_cache.get_or_generate(profile)
    return forecast.model_dump(mode="json", by_alias=True)


async def _periodic_horoscope(
    category: ContentCategory,
    user_id: str,
    store: SqlProfileStore,
    orchestrator: GenerationOrchestrator,
) -> Dict[str, Any]:
    profile = await require_profile(store, user_id)
    forecast = await orchestrator.get_or_generate_horoscope(profile, category)
    return forecast.model_dump(mode="json", by_alias=True)


@router.get("/horoscope/weekly")
async def get_weekly_horoscope(
    user_id: str = Depends(get_current_user_id),
    store: SqlProfileStore = Depends(get_profile_store),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    return await _periodic_horoscope(ContentCategory.WEEKLY_FORECAST, user_id, store, orchestrator)


@router.get("/horoscope/monthly")
async def get_monthly_horoscope(
    user_id: str = Depends(get_current_user_id),
    store: SqlProfileStore = Depends(get_profile_store),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    return await _periodic_horoscope(ContentCategory.MONTHLY_FORECAST, user_id, store, orchestrator)


@router.get("/deep-dive/{topic}")
async def get_deep_dive(
    topic: DeepDiveTopic,
    user_id: str = Depends(get_current_user_id),
    store: SqlProfileStore = Depends(get_profile_store),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    profile = await require_profile(store, user_id)
    text = await orchestrator.get_or_generate_deep_dive(profile, topic)
    return {"topic": topic.value, "content": text}


@router.post("/synastry/{mode}")
async def get_synastry(
    mode: MemoMode,
    request: SynastryRequest,
    user_id: str = Depends(get_current_user_id),
    store: SqlProfileStore = Depends(get_profile_store),
    memo_cache: PartnerMemoCache = Depends(get_memo_cache),
):
    profile = await require_profile(store, user_id)
    memo = await memo_cache.get_or_generate(
        profile,
        request.partner_name,
        request.partner_date,
        request.partner_time,
        request.partner_place,
        request.relationship_type,
        mode=mode,
    )
    return {"mode": mode.value, "memo": memo}


@router.post("/regenerate")
async def regenerate_content(
    request: RegenerateRequest,
    user_id: str = Depends(get_current_user_id),
    store: SqlProfileStore = Depends(get_profile_store),
    gate: RegenerationGate = Depends(get_regeneration_gate),
):
    """
    "Tell it differently": regenerate one category.

    Denials are a normal 200 response with status "denied" so the client
    can show an upsell or a try-later message.
    """
    profile = await require_profile(store, user_id)
    result = await gate.attempt_regenerate(profile, request.category, request.accept_paid)

    if not result.granted:
        return {
            "status": "denied",
            "reason": result.reason.value,
            "category": result.category.value,
            "price": result.price,
        }

    return {
        "status": "success",
        "category": result.category.value,
        "content": result.content,
        "was_paid": result.was_paid,
        "charged": result.charged,
    }
