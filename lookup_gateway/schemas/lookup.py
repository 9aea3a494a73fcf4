"""
Pydantic v2 schemas for the public lookup endpoint.

Separation:
  • LookupRecord   — one normalized subscriber entry (fixed field set).
  • LookupResponse — the success envelope.
  • ErrorResponse  — the only shape a caller sees on failure.

Upstream payloads never pass through unfiltered: every field a caller
receives is named here.
"""

from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PLACEHOLDER = "N/A"


class LookupRecord(BaseModel):
    """One subscriber entry, projected onto the public field set."""

    model_config = ConfigDict(extra="forbid")

    name: str = PLACEHOLDER
    fname: str = PLACEHOLDER
    mobile: str
    alt: str = PLACEHOLDER
    address: str = PLACEHOLDER
    circle: str = PLACEHOLDER
    id: str = PLACEHOLDER


class LookupMeta(BaseModel):
    query: str = Field(..., examples=["9876543210"])
    results: int = Field(..., ge=0)
    processed_at: datetime.datetime


class LookupResponse(BaseModel):
    """Body of a 200 from GET /lookup."""

    success: Literal[True] = True
    data: list[LookupRecord]
    meta: LookupMeta


class ErrorResponse(BaseModel):
    """Body of every non-2xx from GET /lookup."""

    error: str = Field(..., examples=["Daily quota exceeded"])
    retry_after: int | None = Field(
        default=None,
        serialization_alias="retryAfter",
        description="Seconds to wait before retrying (quota and upstream errors only).",
    )
