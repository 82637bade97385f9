"""User profile model - birth facts, chart, and the generated content bundle."""

from datetime import datetime, date, timezone
from typing import Any, Dict, Optional

from sqlalchemy import String, DateTime, Date, Boolean, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class UserProfile(Base):
    """
    One row per app user (Telegram ID).
    Content bundle and ledgers are stored as JSON documents and replaced
    as a whole on every save.
    """

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    birth_date: Mapped[date] = mapped_column(Date, nullable=False)

    # HH:MM, 24-hour
    birth_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    birth_place: Mapped[str] = mapped_column(String(200), default="", nullable=False)

    language: Mapped[str] = mapped_column(String(5), default="en", nullable=False)

    is_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Shared forecast cache bucket
    sun_sign: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        index=True,
    )

    # Chart Engine output, computed once
    chart: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # ContentBundle document
    bundle: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # category -> epoch millis of last generation
    timestamps: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    # category -> regeneration usage
    regenerations: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    # Telegram stars available for paid regenerations
    stars_balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<UserProfile {self.user_id} sign={self.sun_sign}>"
