"""AI Response Gateway — orchestrator integrating all gateway components.

Main entry point for generating reflections and insights:
  1. Validates caller input (the only error that reaches callers)
  2. Checks the Rate Limiter — denied requests skip the primary provider
  3. Picks a credential from the Credential Rotator
  4. Calls the Primary Provider, rotating credentials on quota exhaustion
  5. Falls back to the Secondary Provider when the primary path is
     rate-limited, unconfigured or exhausted
  6. Falls back to the Contextual Fallback Generator when nothing answers
  7. Sanitizes and tags the result with its provenance

Usage:
    gateway = AiResponseGateway.from_settings(settings)

    result = await gateway.generate_empathic_response("Today was hard...")
    result.text, result.provenance
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from reflectai.core.metrics import (
    AI_GENERATION_DURATION,
    AI_GENERATIONS,
    AI_KEY_ROTATIONS,
    AI_PRIMARY_CALLS,
    AI_RATE_LIMITED,
)
from reflectai.gateway.credentials import CredentialRotator
from reflectai.gateway.errors import (
    CallerInputError,
    ConfigurationError,
    QuotaExceededError,
    TransientProviderError,
)
from reflectai.gateway.fallback import ContextualFallbackGenerator
from reflectai.gateway.health import HealthProber
from reflectai.gateway.primary import GeminiClient
from reflectai.gateway.prompts import (
    build_companion_prompt,
    build_empathic_prompt,
    build_mood_insight_prompt,
    describe_mood,
)
from reflectai.gateway.rate_limiter import CallRateLimiter
from reflectai.gateway.sanitizer import sanitize_response
from reflectai.gateway.secondary import BackupChatClient
from reflectai.gateway.types import (
    ChatTurn,
    GatewayConfig,
    GenerationRequest,
    GenerationResult,
    HealthSnapshot,
    Provenance,
    RequestKind,
)

if TYPE_CHECKING:
    from reflectai.core.config import Settings

logger = logging.getLogger(__name__)

MIN_MOOD_LEVEL = 1
MAX_MOOD_LEVEL = 10


class AiResponseGateway:
    """Main gateway orchestrator.

    Integrates:
      - CallRateLimiter: rolling 5-minute / 1-hour budgets for the primary provider
      - CredentialRotator: circular key rotation with cooldowns
      - GeminiClient: primary provider calls
      - BackupChatClient: secondary provider model cascade
      - ContextualFallbackGenerator: canned responses of last resort
      - HealthProber: cached credential health sweeps

    One instance is shared by every request; each component guards its own
    state.
    """

    def __init__(
        self,
        rotator: CredentialRotator,
        rate_limiter: CallRateLimiter,
        primary: GeminiClient,
        secondary: BackupChatClient,
        fallback: ContextualFallbackGenerator | None = None,
        health: HealthProber | None = None,
    ):
        self.rotator = rotator
        self.rate_limiter = rate_limiter
        self.primary = primary
        self.secondary = secondary
        self.fallback = fallback or ContextualFallbackGenerator()
        self.health = health or HealthProber(rotator, primary)

    @classmethod
    def from_settings(cls, settings: Settings) -> AiResponseGateway:
        """Build the full component graph from application settings."""
        config: GatewayConfig = settings.gateway_config()

        rotator = CredentialRotator(
            settings.primary_credentials,
            cooldown_seconds=config.key_cooldown_seconds,
        )
        primary = GeminiClient(
            model=config.primary_model,
            timeout=config.generation_timeout,
            max_concurrent=config.max_concurrent_calls,
            api_url_template=config.primary_url_template,
        )
        secondary = BackupChatClient(
            api_key=settings.backup_ai_key,
            base_url=config.backup_base_url,
            models=config.backup_models,
            timeout=config.backup_timeout,
        )
        return cls(
            rotator=rotator,
            rate_limiter=CallRateLimiter(
                max_per_5min=config.max_calls_per_5min,
                max_per_hour=config.max_calls_per_hour,
            ),
            primary=primary,
            secondary=secondary,
            health=HealthProber(
                rotator,
                primary,
                cache_seconds=config.health_cache_seconds,
                probe_timeout=config.health_probe_timeout,
            ),
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def generate_empathic_response(self, journal_text: str) -> GenerationResult:
        """Reflect on a journal entry."""
        journal_text = _require_text(journal_text, "journal_text")
        request = GenerationRequest(kind=RequestKind.EMPATHIC, subject=journal_text)
        return await self._generate(request, build_empathic_prompt(journal_text))

    async def generate_companion_response(
        self,
        message: str,
        history: Sequence[ChatTurn | Mapping[str, str]] | None = None,
    ) -> GenerationResult:
        """Answer one conversational turn; ``history`` is ordered oldest first."""
        message = _require_text(message, "message")
        turns = _coerce_history(history)
        request = GenerationRequest(kind=RequestKind.COMPANION, subject=message, history=turns)
        return await self._generate(request, build_companion_prompt(message, turns))

    async def generate_mood_insight(
        self,
        mood_level: int,
        recent_levels: Sequence[int] | None = (),
        notes: str | None = None,
        time_range_days: int | None = None,
    ) -> GenerationResult:
        """Short (<100 words) encouraging note about a mood trend."""
        if isinstance(mood_level, bool) or not isinstance(mood_level, int):
            raise CallerInputError("mood_level must be an integer")
        if not MIN_MOOD_LEVEL <= mood_level <= MAX_MOOD_LEVEL:
            raise CallerInputError(f"mood_level must be between {MIN_MOOD_LEVEL} and {MAX_MOOD_LEVEL}")
        recent_levels = () if recent_levels is None else recent_levels
        if not isinstance(recent_levels, (list, tuple)) or not all(
            isinstance(level, int) and not isinstance(level, bool) for level in recent_levels
        ):
            raise CallerInputError("recent_levels must be a list of integers")
        if notes is not None and not isinstance(notes, str):
            raise CallerInputError("notes must be a string")
        levels = list(recent_levels)
        notes = notes.strip() if notes and notes.strip() else None

        request = GenerationRequest(
            kind=RequestKind.MOOD_INSIGHT,
            subject=describe_mood(mood_level, levels, notes),
            mood_level=mood_level,
        )
        prompt = build_mood_insight_prompt(mood_level, levels, notes, time_range_days)
        return await self._generate(request, prompt)

    async def check_health(self, force: bool = False) -> HealthSnapshot:
        return await self.health.check_health(force=force)

    def get_cached_health(self) -> HealthSnapshot | None:
        return self.health.get_cached()

    def clear_health_cache(self) -> None:
        self.health.clear_cache()

    def get_status(self) -> dict:
        """Gateway state for operators (no secrets)."""
        cached = self.health.get_cached()
        return {
            "current_key": self.rotator.current_index + 1 if len(self.rotator) else None,
            "total_keys": len(self.rotator),
            "available_keys": self.rotator.available_count(),
            "keys": [status.to_dict() for status in self.rotator.status()],
            "rate_limit": self.rate_limiter.get_stats(),
            "backup_configured": self.secondary.configured,
            "health": cached.to_dict() if cached else None,
        }

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _generate(self, request: GenerationRequest, prompt: str) -> GenerationResult:
        """Run the full fallback chain; never raises."""
        start = time.monotonic()
        try:
            result = await self._route(request, prompt)
        except Exception:
            logger.exception("Unexpected gateway error for %s request", request.kind.value)
            result = self._fallback(request)

        elapsed = time.monotonic() - start
        result.latency_ms = int(elapsed * 1000)
        AI_GENERATIONS.labels(kind=request.kind.value, provenance=result.provenance.value).inc()
        AI_GENERATION_DURATION.labels(kind=request.kind.value).observe(elapsed)
        logger.info(
            "%s response generated (%s) in %dms",
            request.kind.value,
            result.provenance.value,
            result.latency_ms,
            extra={"request_kind": request.kind.value},
        )
        return result

    async def _route(self, request: GenerationRequest, prompt: str) -> GenerationResult:
        admission = await self.rate_limiter.admit()
        if not admission.allowed:
            AI_RATE_LIMITED.inc()
            logger.warning("%s - using backup service instead", admission.reason)
            return await self._secondary_or_fallback(request, rate_limited=True)

        result = None
        try:
            result = await self._primary_path(request, prompt)
        finally:
            # Only a successful primary call keeps its place in the window
            if result is None or result.provenance != Provenance.REAL:
                await self.rate_limiter.release(admission.slot)

        if result is None:
            return await self._secondary_or_fallback(request)
        return result

    async def _primary_path(self, request: GenerationRequest, prompt: str) -> GenerationResult | None:
        """Try the credentials in turn; None means the secondary path should answer."""
        if not len(self.rotator):
            logger.warning("No primary API keys available, using backup service")
            return None

        if not self.rotator.ensure_available():
            logger.warning("Every primary API key is cooling down, using backup service")
            return None

        for _ in range(len(self.rotator)):
            current = self.rotator.current()
            if current is None:
                break
            index, credential = current

            result = await self.primary.generate(prompt, credential)
            try:
                result.raise_for_failure()
            except QuotaExceededError as e:
                AI_PRIMARY_CALLS.labels(outcome="quota_exceeded").inc()
                logger.warning("API key #%d quota exceeded: %s", index + 1, e)
                self.rotator.mark_exceeded(index)
                if self.rotator.rotate():
                    AI_KEY_ROTATIONS.labels(result="rotated").inc()
                    continue
                AI_KEY_ROTATIONS.labels(result="exhausted").inc()
                break
            except TransientProviderError as e:
                # Non-quota failures go straight to the contextual fallback, without rotation
                AI_PRIMARY_CALLS.labels(outcome="transient").inc()
                logger.warning("Gemini API error (non-quota) for %s: %s", request.kind.value, e)
                return self._fallback(request)

            AI_PRIMARY_CALLS.labels(outcome="success").inc()
            self.rotator.mark_success(index)
            return GenerationResult(
                text=sanitize_response(result.text),
                provenance=Provenance.REAL,
                kind=request.kind,
                model=result.model,
                credential_index=index,
            )

        return None

    async def _secondary_or_fallback(self, request: GenerationRequest, rate_limited: bool = False) -> GenerationResult:
        try:
            reply = await self.secondary.generate_or_raise(request.subject, request.kind, request.history)
        except ConfigurationError as e:
            logger.warning("%s, using contextual fallback", e)
        except Exception as e:
            logger.error("Backup AI service failed for %s: %s", request.kind.value, e)
        else:
            return GenerationResult(
                text=sanitize_response(reply.text),
                provenance=Provenance.BACKUP,
                kind=request.kind,
                model=reply.model,
                rate_limited=rate_limited,
            )

        return self._fallback(request, rate_limited=rate_limited)

    def _fallback(self, request: GenerationRequest, rate_limited: bool = False) -> GenerationResult:
        if request.kind == RequestKind.MOOD_INSIGHT and request.mood_level is not None:
            text = self.fallback.for_mood(request.mood_level)
        else:
            text = self.fallback.generate(request.subject)
        return GenerationResult(
            text=text,
            provenance=Provenance.FALLBACK,
            kind=request.kind,
            rate_limited=rate_limited,
        )


def _require_text(value: str | None, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise CallerInputError(f"{field} must be a non-empty string")
    return value.strip()


def _coerce_history(history: Sequence[ChatTurn | Mapping[str, str]] | None) -> list[ChatTurn]:
    turns: list[ChatTurn] = []
    for item in history or ():
        if isinstance(item, ChatTurn):
            turns.append(item)
        elif isinstance(item, Mapping):
            turns.append(ChatTurn(role=str(item.get("role", "user")), content=str(item.get("content", ""))))
        else:
            raise CallerInputError("history entries must have a role and content")
    return turns
