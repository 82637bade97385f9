"""Models package for database models."""

from app.models.profile import UserProfile
from app.models.forecast_cache import DailyForecastCache
from app.models.stars_transaction import StarsTransaction

__all__ = [
    "UserProfile",
    "DailyForecastCache",
    "StarsTransaction",
]
