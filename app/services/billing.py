"""
Billing - Telegram stars balance used to pay for regenerations.

Charges are a single conditional UPDATE so the balance never goes negative,
even with two charges in flight.
"""

import logging
from enum import Enum
from typing import Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from app.database import SessionFactory
from app.models.profile import UserProfile
from app.models.stars_transaction import StarsTransaction

logger = logging.getLogger(__name__)


class ChargeOutcome(str, Enum):
    APPROVED = "APPROVED"
    DENIED = "DENIED"


class BillingError(RuntimeError):
    """Raised when the billing backend itself fails (not a declined charge)."""


class Billing(Protocol):
    async def charge(self, user_id: str, amount: int, reason: str = "") -> ChargeOutcome:
        ...

    async def refund(self, user_id: str, amount: int, reason: str = "") -> None:
        ...


class StarsBalanceBilling:
    """Billing against user_profiles.stars_balance."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    async def get_balance(self, user_id: str) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                select(UserProfile.stars_balance).where(UserProfile.user_id == user_id)
            )
            return result.scalar_one_or_none() or 0

    async def charge(self, user_id: str, amount: int, reason: str = "") -> ChargeOutcome:
        """Deduct `amount` stars if the balance covers it."""
        if amount <= 0:
            raise ValueError("Charge amount must be positive")

        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    update(UserProfile)
                    .where(UserProfile.user_id == user_id)
                    .where(UserProfile.stars_balance >= amount)
                    .values(stars_balance=UserProfile.stars_balance - amount)
                    .returning(UserProfile.stars_balance)
                )
                balance_after: Optional[int] = result.scalar_one_or_none()
                if balance_after is None:
                    logger.info(f"Charge of {amount} stars declined for {user_id}")
                    return ChargeOutcome.DENIED

                session.add(StarsTransaction(
                    user_id=user_id,
                    amount=-amount,
                    balance_after=balance_after,
                    reason=reason or None,
                ))
        except SQLAlchemyError as e:
            raise BillingError(f"Charge failed for {user_id}: {e}") from e

        logger.info(f"Charged {amount} stars to {user_id}, balance {balance_after}")
        return ChargeOutcome.APPROVED

    async def refund(self, user_id: str, amount: int, reason: str = "") -> None:
        """Credit `amount` stars back."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    update(UserProfile)
                    .where(UserProfile.user_id == user_id)
                    .values(stars_balance=UserProfile.stars_balance + amount)
                    .returning(UserProfile.stars_balance)
                )
                balance_after = result.scalar_one_or_none()
                if balance_after is None:
                    raise BillingError(f"Refund target {user_id} not found")

                session.add(StarsTransaction(
                    user_id=user_id,
                    amount=amount,
                    balance_after=balance_after,
                    reason=reason or None,
                ))
        except SQLAlchemyError as e:
            raise BillingError(f"Refund failed for {user_id}: {e}") from e

        logger.info(f"Refunded {amount} stars to {user_id}, balance {balance_after}")
