"""API endpoints for the AI Response Gateway.

Provides:
  - POST /ai/empathic — reflection on a journal entry
  - POST /ai/companion — one companion conversation turn
  - POST /ai/mood-insight — short note about a mood trend
  - GET /ai/health — cached primary-provider health (``?force=true`` re-probes)
  - DELETE /ai/health/cache — drop the cached health snapshot
  - GET /ai/status — credential cooldowns and rate-limit windows
"""

import logging

from fastapi import APIRouter, Depends, Query, Request

from reflectai.core.config import settings
from reflectai.core.rate_limit import limiter
from reflectai.gateway.gateway import AiResponseGateway
from reflectai.gateway.types import ChatTurn, GenerationResult
from reflectai.schemas.ai import (
    AiHealthOut,
    AiStatusOut,
    CompanionRequest,
    EmpathicRequest,
    GenerationOut,
    MoodInsightRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


def get_gateway(request: Request) -> AiResponseGateway:
    """The process-wide gateway built at startup."""
    return request.app.state.gateway


def _to_out(result: GenerationResult) -> GenerationOut:
    return GenerationOut.model_validate(result.to_dict())


@router.post("/empathic", response_model=GenerationOut)
@limiter.limit(settings.http_rate_limit)
async def empathic_response(
    request: Request,
    body: EmpathicRequest,
    gateway: AiResponseGateway = Depends(get_gateway),
):
    """Empathetic reflection on a journal entry. Always answers, even when every provider is down."""
    result = await gateway.generate_empathic_response(body.journal_text)
    return _to_out(result)


@router.post("/companion", response_model=GenerationOut)
@limiter.limit(settings.http_rate_limit)
async def companion_response(
    request: Request,
    body: CompanionRequest,
    gateway: AiResponseGateway = Depends(get_gateway),
):
    history = [ChatTurn(role=turn.role, content=turn.content) for turn in body.history]
    result = await gateway.generate_companion_response(body.message, history)
    return _to_out(result)


@router.post("/mood-insight", response_model=GenerationOut)
@limiter.limit(settings.http_rate_limit)
async def mood_insight(
    request: Request,
    body: MoodInsightRequest,
    gateway: AiResponseGateway = Depends(get_gateway),
):
    result = await gateway.generate_mood_insight(
        body.mood_level,
        body.recent_levels,
        notes=body.notes,
        time_range_days=body.time_range_days,
    )
    return _to_out(result)


@router.get("/health", response_model=AiHealthOut)
async def ai_health(
    force: bool = Query(False, description="Bypass the 10-minute cache and probe every key"),
    gateway: AiResponseGateway = Depends(get_gateway),
):
    """Primary-provider health. Probing consumes quota, so results are cached."""
    snapshot = await gateway.check_health(force=force)
    return snapshot.to_dict()


@router.delete("/health/cache", status_code=204)
async def clear_health_cache(gateway: AiResponseGateway = Depends(get_gateway)):
    gateway.clear_health_cache()


@router.get("/status", response_model=AiStatusOut)
async def ai_status(gateway: AiResponseGateway = Depends(get_gateway)):
    return gateway.get_status()
