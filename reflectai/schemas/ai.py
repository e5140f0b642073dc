"""Pydantic schemas for the AI Response Gateway API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class EmpathicRequest(BaseModel):
    journal_text: str = Field(min_length=1, max_length=20_000, description="Journal entry to reflect on")


class ChatTurnIn(BaseModel):
    role: str = Field(pattern=r"^(user|assistant)$")
    content: str = Field(max_length=10_000)


class CompanionRequest(BaseModel):
    message: str = Field(min_length=1, max_length=10_000)
    history: list[ChatTurnIn] = Field(
        default_factory=list,
        max_length=50,
        description="Prior turns, oldest first",
    )


class MoodInsightRequest(BaseModel):
    mood_level: int = Field(ge=1, le=10, description="Current mood on a 1-10 scale")
    recent_levels: list[int] = Field(default_factory=list, max_length=60)
    notes: str | None = Field(None, max_length=2_000)
    time_range_days: int | None = Field(None, ge=1, le=365)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class GenerationOut(BaseModel):
    """Generated text and the path that produced it (real / backup / fallback)."""

    text: str
    provenance: str
    kind: str
    model: str = ""
    latency_ms: int = 0
    rate_limited: bool = False


class AiHealthOut(BaseModel):
    status: str  # online | warning | offline
    service_health: str  # operational | quota_limited | degraded | offline
    available: bool
    working_keys: int
    quota_exceeded: int
    failed_keys: int
    total_keys: int
    error: str | None = None
    checked_at: datetime
    is_cached: bool = False
    cache_age_seconds: int = 0


class CredentialStatusOut(BaseModel):
    index: int
    available: bool
    cooldown_until: datetime | None = None


class RateLimitStatsOut(BaseModel):
    calls_last_5min: int
    limit_5min: int
    calls_last_hour: int
    limit_hour: int


class AiStatusOut(BaseModel):
    current_key: int | None = None
    total_keys: int
    available_keys: int
    keys: list[CredentialStatusOut]
    rate_limit: RateLimitStatsOut
    backup_configured: bool
    health: AiHealthOut | None = None
