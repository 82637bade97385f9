"""
Profile Store - durable storage of profiles and their content bundles.

SqlProfileStore opens a session per call, so a write scheduled in the
background does not depend on the request that scheduled it.
"""

import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.content.bundle import ChartFacts, ContentBundle, DailyForecast, Profile
from app.content.zodiac import ZodiacSign
from app.database import SessionFactory
from app.models.profile import UserProfile

logger = logging.getLogger(__name__)


class ProfilePersistenceError(RuntimeError):
    """Raised when a profile cannot be read or written."""


class ProfileNotFoundError(LookupError):
    """Raised when no profile exists for a user id."""


class ProfileStore(Protocol):
    async def get(self, user_id: str) -> Optional[Profile]:
        ...

    async def put(self, profile: Profile) -> None:
        ...

    async def put_daily_forecast(self, user_id: str, forecast: DailyForecast, stamped_at: int) -> None:
        ...


def profile_from_row(row: UserProfile) -> Profile:
    return Profile(
        user_id=row.user_id,
        name=row.name,
        birth_date=row.birth_date,
        birth_time=row.birth_time,
        birth_place=row.birth_place,
        language=row.language,
        is_premium=row.is_premium,
        sun_sign=ZodiacSign.parse(row.sun_sign),
        chart=ChartFacts.model_validate(row.chart) if row.chart else None,
        bundle=ContentBundle.model_validate(row.bundle) if row.bundle else None,
        timestamps=row.timestamps or {},
        regenerations=row.regenerations or {},
    )


def apply_profile(row: UserProfile, profile: Profile) -> None:
    """Copy a profile document onto a row. The stars balance is owned by billing."""
    data = profile.model_dump(mode="json", by_alias=False)
    row.name = profile.name
    row.birth_date = profile.birth_date
    row.birth_time = profile.birth_time
    row.birth_place = profile.birth_place
    row.language = profile.language
    row.is_premium = profile.is_premium
    row.sun_sign = profile.sun_sign.value if profile.sun_sign else None
    row.chart = data["chart"]
    row.bundle = data["bundle"]
    row.timestamps = data["timestamps"]
    row.regenerations = data["regenerations"]


class SqlProfileStore:
    """Profile Store on the user_profiles table."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    async def get(self, user_id: str) -> Optional[Profile]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(UserProfile).where(UserProfile.user_id == user_id)
                )
                row = result.scalar_one_or_none()
                return profile_from_row(row) if row else None
        except SQLAlchemyError as e:
            raise ProfilePersistenceError(f"Failed to load profile {user_id}: {e}") from e

    async def put(self, profile: Profile) -> None:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(UserProfile).where(UserProfile.user_id == profile.user_id)
                )
                row = result.scalar_one_or_none()
                if row is None:
                    row = UserProfile(user_id=profile.user_id, stars_balance=0)
                    session.add(row)
                apply_profile(row, profile)
                await session.flush()
        except SQLAlchemyError as e:
            raise ProfilePersistenceError(f"Failed to save profile {profile.user_id}: {e}") from e

        logger.debug(f"Saved profile {profile.user_id}")

    async def put_daily_forecast(self, user_id: str, forecast: DailyForecast, stamped_at: int) -> None:
        """
        Merge a daily forecast into the stored bundle, leaving every other slice as stored.

        The row is locked for the read-modify-write, so a late background save
        cannot undo a regeneration or a partner memo written in between.
        """
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(UserProfile).where(UserProfile.user_id == user_id).with_for_update()
                )
                row = result.scalar_one_or_none()
                if row is None:
                    logger.warning(f"No stored profile {user_id} for daily forecast")
                    return
                stored = profile_from_row(row)
                if not stored.merge_daily_forecast(forecast, stamped_at):
                    logger.info(f"Stored forecast for {user_id} is newer than {forecast.reference_date}, skipping")
                    return
                data = stored.model_dump(mode="json", by_alias=False)
                row.bundle = data["bundle"]
                row.timestamps = data["timestamps"]
                await session.flush()
        except SQLAlchemyError as e:
            raise ProfilePersistenceError(f"Failed to save daily forecast for {user_id}: {e}") from e


async def require_profile(store: ProfileStore, user_id: str) -> Profile:
    """Load a profile or raise ProfileNotFoundError."""
    profile = await store.get(user_id)
    if profile is None:
        raise ProfileNotFoundError(user_id)
    return profile
