"""
API key model — metered credential plus its daily quota state.

Security notes:
  • Raw secrets are NEVER stored. Only the SHA-256 fingerprint is persisted.
  • `key_preview` keeps the first 8 characters for identification in the
    admin API without exposing the full key.
  • Revocation is a soft delete: expires_at moves into the past and
    is_paused is set. Rows are never removed while usage logs point at them.

Quota state:
  • daily_used counts successful lookups on last_reset_date (UTC).
  • The first consumption on a new day resets daily_used to 1 — see
    services.quota.consume for the single-statement update.
"""

import datetime

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from lookup_gateway.core.database import Base


class APIKey(Base):
    """Hashed API key belonging to a user."""

    __tablename__ = "api_keys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
        index=True,
    )
    key_preview: Mapped[str] = mapped_column(
        String(12),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    # NULL = never expires
    expires_at: Mapped[datetime.datetime | None] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
    )
    is_paused: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    # ── Quota ───────────────────────────────────────────────
    daily_limit: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1000,
        server_default="1000",
    )
    daily_used: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    last_reset_date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        server_default=func.current_date(),
    )

    __table_args__ = (
        CheckConstraint("daily_limit > 0", name="ck_daily_limit_positive"),
        CheckConstraint("daily_used >= 0", name="ck_daily_used_non_neg"),
    )

    def __repr__(self) -> str:
        return (
            f"<APIKey id={self.id} preview={self.key_preview!r} "
            f"paused={self.is_paused} used={self.daily_used}/{self.daily_limit}>"
        )
