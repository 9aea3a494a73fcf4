"""
SQLAlchemy model for the `api_usage_logs` table.

Each row is one lookup call that got as far as resolving a key —
admitted or rejected. Rows are billing and audit evidence: the gateway
only ever INSERTs them.

Design notes:
  • ip_address is a plain string so IPv4, IPv6 and "unknown" all fit.
  • created_at is indexed for time-window queries.
"""

import datetime

from sqlalchemy import (
    TIMESTAMP,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from lookup_gateway.core.database import Base

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


class UsageLog(Base):
    """One lookup call, as seen by the gateway."""

    __tablename__ = "api_usage_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    api_key_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("api_keys.id", ondelete="CASCADE"),
        nullable=False,
    )

    # ── Call ────────────────────────────────────────────────
    mobile_number: Mapped[str] = mapped_column(String(20), nullable=False)
    response_time_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    # ── Caller ──────────────────────────────────────────────
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime.datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("response_time_ms >= 0", name="ck_response_time_non_neg"),
        CheckConstraint(
            "status IN ('success', 'error')",
            name="ck_usage_status_valid",
        ),
        Index("ix_api_usage_logs_api_key_id", "api_key_id"),
        Index("ix_api_usage_logs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<UsageLog id={self.id} key={self.api_key_id} "
            f"status={self.status} ms={self.response_time_ms}>"
        )
