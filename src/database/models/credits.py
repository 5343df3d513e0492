"""Daily credit ledger."""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, Integer, UUID, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class DailyCreditUsage(Base):
    __tablename__ = "daily_credit_usage"
    __table_args__ = (
        UniqueConstraint("user_id", "usage_date", name="uq_daily_credit_usage_user_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID, nullable=False)
    usage_date: Mapped[date] = mapped_column(Date, nullable=False)
    credits_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    daily_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
