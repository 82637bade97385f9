"""
Regeneration Entitlement Gate - pay-or-wait control over forced regeneration.

The only path that changes one-time or paid-only content after its first
generation. Decision table:

    not premium                              -> denied (NOT_PREMIUM)
    premium, free allowance left in window   -> proceed, free
    premium, allowance used, not paying      -> denied (RATE_LIMITED)
    premium, allowance used, pays the price  -> proceed, charged
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from app.config import settings
from app.content.bundle import Profile, RegenerationLedgerEntry
from app.content.categories import (
    CategoryPolicy,
    ContentCategory,
    get_policy,
)
from app.content.reference_day import reference_day, to_epoch_millis, utc_now
from app.services.billing import Billing, ChargeOutcome
from app.services.content_oracle import ContentOracle, ContentOracleError
from app.services.generation_orchestrator import generate_category
from app.services.profile_store import ProfilePersistenceError, ProfileStore
from app.services.validation import FieldError, InputValidationError

logger = logging.getLogger(__name__)


class DeniedReason(str, Enum):
    """Why a regeneration did not happen. Rendered as upsell / try-later, not as errors."""

    NOT_PREMIUM = "NOT_PREMIUM"
    RATE_LIMITED = "RATE_LIMITED"
    PAYMENT_DECLINED = "PAYMENT_DECLINED"


@dataclass
class RegenerationResult:
    category: ContentCategory
    price: int
    content: Any = None
    reason: Optional[DeniedReason] = None
    charged: int = 0

    @property
    def granted(self) -> bool:
        return self.reason is None

    @property
    def was_paid(self) -> bool:
        return self.charged > 0


def prune_free_uses(entry: RegenerationLedgerEntry, policy: CategoryPolicy, now_ms: int) -> None:
    """Drop free uses that fell out of the rolling window."""
    window_ms = int(policy.free_window.total_seconds() * 1000)
    entry.free_uses = [used for used in entry.free_uses if now_ms - used < window_ms]


class RegenerationGate:
    """Free-or-paid regeneration of a single category."""

    def __init__(
        self,
        oracle: ContentOracle,
        profile_store: ProfileStore,
        billing: Billing,
        price: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.oracle = oracle
        self.profile_store = profile_store
        self.billing = billing
        self.price = settings.regeneration_price_stars if price is None else price
        self.clock = clock

    def free_uses_left(self, profile: Profile, category: ContentCategory) -> int:
        """Free regenerations still available in the current window."""
        policy = get_policy(category)
        stored = profile.regenerations.get(category)
        entry = stored.model_copy(deep=True) if stored is not None else RegenerationLedgerEntry()
        prune_free_uses(entry, policy, to_epoch_millis(self.clock()))
        return max(policy.free_regenerations - len(entry.free_uses), 0)

    async def attempt_regenerate(
        self,
        profile: Profile,
        category: ContentCategory,
        accept_paid: bool = False,
    ) -> RegenerationResult:
        """
        Regenerate one category if the user is entitled to.

        Raises:
            InputValidationError: category is not regenerable or no chart yet
            ContentOracleError: generation failed (any charge is refunded)
            BillingError: the billing backend failed
        """
        policy = get_policy(category)
        if policy.kind.is_scheduled:
            raise InputValidationError([
                FieldError("category", f"{category.value} refreshes on a schedule and cannot be regenerated")
            ])

        if not profile.is_premium:
            logger.info(f"Regeneration of {category.value} denied for {profile.user_id}: not premium")
            return RegenerationResult(category, self.price, reason=DeniedReason.NOT_PREMIUM)

        if profile.chart is None:
            raise InputValidationError([FieldError("profile.chart", "Birth chart has not been computed")])

        now = self.clock()
        now_ms = to_epoch_millis(now)
        entry = profile.regeneration_entry(category)
        prune_free_uses(entry, policy, now_ms)

        charged = 0
        if len(entry.free_uses) >= policy.free_regenerations:
            if not accept_paid:
                logger.info(f"Regeneration of {category.value} rate limited for {profile.user_id}")
                return RegenerationResult(category, self.price, reason=DeniedReason.RATE_LIMITED)

            outcome = await self.billing.charge(
                profile.user_id, self.price, reason=f"regenerate:{category.value}"
            )
            if outcome is not ChargeOutcome.APPROVED:
                return RegenerationResult(category, self.price, reason=DeniedReason.PAYMENT_DECLINED)
            charged = self.price

        try:
            content = await generate_category(self.oracle, profile, category, reference_day(now))
        except ContentOracleError:
            if charged:
                await self.billing.refund(
                    profile.user_id, charged, reason=f"refund:{category.value}"
                )
                logger.info(f"Refunded {charged} stars to {profile.user_id} after failed regeneration")
            raise

        profile.ensure_bundle().set_content(category, content)
        profile.stamp(category, now_ms)
        entry.last_regen_at = now_ms
        if charged:
            entry.paid_count += 1
        else:
            entry.free_uses.append(now_ms)

        try:
            await self.profile_store.put(profile)
        except ProfilePersistenceError as e:
            logger.warning(f"Failed to save regenerated {category.value} for {profile.user_id}: {e}")

        logger.info(
            f"Regenerated {category.value} for {profile.user_id} "
            f"({'paid ' + str(charged) if charged else 'free'})"
        )
        return RegenerationResult(category, self.price, content=content, charged=charged)
