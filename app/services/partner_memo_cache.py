"""
Partner Memo Cache - compatibility memos per (user, partner).

A partner is identified by normalized name + birth date. Brief and full
memos are separate slots: generating one never fills or reuses the other.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional, Union

from app.content.bundle import PartnerMemoSlot, Profile, partner_key
from app.content.categories import MemoMode
from app.services.content_oracle import ContentOracle, ContentOracleError
from app.services.profile_store import ProfilePersistenceError, ProfileStore
from app.services.validation import FieldError, InputValidationError, validate_partner_facts

logger = logging.getLogger(__name__)


class PartnerMemoCache:
    """Get-or-generate for brief/full synastry memos."""

    def __init__(self, oracle: ContentOracle, profile_store: ProfileStore):
        self.oracle = oracle
        self.profile_store = profile_store

    async def get_or_generate(
        self,
        profile: Profile,
        partner_name: str,
        partner_date: Union[date, str],
        partner_time: Optional[str] = None,
        partner_place: Optional[str] = None,
        relationship_type: Optional[str] = None,
        mode: MemoMode = MemoMode.BRIEF,
    ) -> Dict[str, Any]:
        """
        Cached memo for the partner in the requested mode.

        Raises:
            InputValidationError: malformed partner facts or no chart yet
            ContentOracleError: generation failed (nothing is cached)
        """
        partner = validate_partner_facts(
            partner_name, partner_date, partner_time, partner_place, relationship_type
        )
        if profile.chart is None:
            raise InputValidationError([FieldError("profile.chart", "Birth chart has not been computed")])

        key = partner_key(partner.name, partner.birth_date)
        bundle = profile.ensure_bundle()

        slot = bundle.partner_memos.get(key)
        if slot is not None:
            cached = slot.get(mode)
            if cached is not None:
                logger.info(f"Using cached {mode.value} memo {key} for {profile.user_id}")
                return cached

        logger.info(f"Generating {mode.value} memo {key} for {profile.user_id}")
        memo = await self.oracle.generate(
            mode.oracle_kind,
            profile.user_facts,
            profile.chart,
            partner=partner,
            language=profile.language,
        )
        if not isinstance(memo, dict) or not memo:
            raise ContentOracleError(f"{mode.value} synastry returned no payload")

        if slot is None:
            slot = PartnerMemoSlot(partner_name=partner.name, partner_date=partner.birth_date)
            bundle.partner_memos[key] = slot
        slot.put(mode, memo)

        try:
            await self.profile_store.put(profile)
        except ProfilePersistenceError as e:
            logger.warning(f"Failed to save {mode.value} memo {key} for {profile.user_id}: {e}")

        return memo
