"""
Pydantic v2 schemas for the admin API.

Separation:
  • APIKeyCreate  — what the admin sends (bounds enforced here → 422).
  • APIKeyCreated — returned ONCE, the only place the secret ever appears.
  • APIKeyOut     — listing row, preview only.
"""

from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from lookup_gateway.services.key_admin import (
    MAX_DAILY_LIMIT,
    MAX_EXPIRES_IN_DAYS,
    MIN_DAILY_LIMIT,
    MIN_EXPIRES_IN_DAYS,
)


# ── Auth ────────────────────────────────────────────────────
class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class AdminOut(BaseModel):
    id: int
    username: str


class LoginResponse(BaseModel):
    success: Literal[True] = True
    user: AdminOut
    message: str = "Login successful"


# ── Keys ────────────────────────────────────────────────────
class APIKeyCreate(BaseModel):
    """Payload accepted by POST /admin/keys."""

    model_config = ConfigDict(extra="forbid")

    user_id: int = Field(..., ge=1)
    expires_in_days: int = Field(
        ...,
        ge=MIN_EXPIRES_IN_DAYS,
        le=MAX_EXPIRES_IN_DAYS,
        examples=[30],
    )
    daily_limit: int = Field(
        ...,
        ge=MIN_DAILY_LIMIT,
        le=MAX_DAILY_LIMIT,
        examples=[1000],
    )


class APIKeyCreated(BaseModel):
    id: int
    api_key: str = Field(..., description="Shown once. Never retrievable again.")
    created_at: datetime.datetime
    expires_at: datetime.datetime | None
    daily_limit: int
    warning: str = "Save this API key immediately - it will not be shown again!"


class RemainingTimeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    days: int
    hours: int


class APIKeyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    key_preview: str
    user_id: int
    username: str
    created_at: datetime.datetime
    expires_at: datetime.datetime | None
    is_paused: bool
    daily_limit: int
    daily_used: int
    last_reset_date: datetime.date
    total_requests: int
    status: Literal["active", "paused", "expired"]
    usage_percentage: int = Field(..., ge=0, le=100)
    is_over_limit: bool
    remaining_time: RemainingTimeOut | None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class FiltersApplied(BaseModel):
    status: Literal["active", "paused", "expired"] | None
    user_id: int | None


class APIKeyPage(BaseModel):
    success: Literal[True] = True
    data: list[APIKeyOut]
    pagination: Pagination
    filters_applied: FiltersApplied


class KeyActionResponse(BaseModel):
    success: Literal[True] = True
    id: int
    message: str
