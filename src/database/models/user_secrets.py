"""Encrypted per-user secrets."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text, UUID, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

GEMINI_SECRET_NAME = "GEMINI_API_KEY"


class UserSecret(Base):
    __tablename__ = "user_secrets"
    __table_args__ = (
        UniqueConstraint("user_id", "secret_name", name="uq_user_secrets_user_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID, nullable=False)
    secret_name: Mapped[str] = mapped_column(String, nullable=False)
    # base64(iv || ciphertext || tag)
    encrypted_value: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
