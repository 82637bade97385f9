"""Daily forecast cache model - one forecast shared by all users of a sign."""

import uuid
from datetime import datetime, date, timezone
from typing import Any, Dict

from sqlalchemy import String, DateTime, Date, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class DailyForecastCache(Base):
    """
    Cross-user cache of daily forecasts.
    Unique on (sign, reference_date, language); concurrent writers upsert
    and the last write wins.
    """

    __tablename__ = "daily_forecast_cache"

    __table_args__ = (
        UniqueConstraint(
            "sign", "reference_date", "language",
            name="uq_daily_forecast_sign_date_lang",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    sign: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    reference_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    language: Mapped[str] = mapped_column(String(5), default="en", nullable=False)

    # DailyForecast document
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)

    model: Mapped[str] = mapped_column(String(50), default="gpt-4o-mini", nullable=False)

    # Prompt template version (for auditing)
    prompt_version: Mapped[str] = mapped_column(String(20), default="v1", nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<DailyForecastCache {self.reference_date} {self.sign} {self.language}>"
