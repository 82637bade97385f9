"""Stars transaction model - audit trail for paid regenerations and refunds."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class StarsTransaction(Base):
    """
    Every change to a user's stars balance.
    Charges are negative amounts, refunds positive.
    """

    __tablename__ = "stars_transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("user_profiles.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)

    # e.g. "regenerate:deep_dive_love", "refund:deep_dive_love"
    reason: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<StarsTransaction {self.user_id} {self.amount}>"
