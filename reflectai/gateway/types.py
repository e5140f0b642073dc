"""Core types and DTOs for the AI Response Gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from reflectai.gateway.errors import QuotaExceededError, TransientProviderError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RequestKind(str, Enum):
    """What the caller wants generated."""

    EMPATHIC = "empathic"  # Reflection on a journal entry
    COMPANION = "companion"  # Conversational turn
    MOOD_INSIGHT = "mood-insight"  # Short note about a mood trend


class Provenance(str, Enum):
    """Which path produced the text of a GenerationResult."""

    REAL = "real"  # Primary provider
    BACKUP = "backup"  # Secondary provider
    FALLBACK = "fallback"  # Canned contextual response


class FailureKind(str, Enum):
    """Classification of a failed primary-provider call."""

    QUOTA_EXCEEDED = "quota_exceeded"  # 429 / quota message → rotate credential
    TRANSIENT = "transient"  # Timeout, transport, 5xx, safety block, empty text


class ProbeOutcome(str, Enum):
    """Outcome of a single health probe against one credential."""

    WORKING = "working"
    QUOTA_EXCEEDED = "quota_exceeded"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@dataclass
class ChatTurn:
    """One prior turn of a companion conversation."""

    role: str  # "user" or "assistant"
    content: str

    @property
    def is_user(self) -> bool:
        return self.role == "user"


@dataclass
class GenerationRequest:
    """A request flowing through the gateway.

    ``subject`` is the user text the response is about. For mood insights it
    is the compact mood summary sent to the secondary provider and matched by
    the fallback generator.
    """

    kind: RequestKind
    subject: str
    history: list[ChatTurn] = field(default_factory=list)
    mood_level: int | None = None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class GenerationResult:
    """Sanitized text plus the path that produced it.

    Provenance is a separate field; the text never carries marker suffixes.
    """

    text: str
    provenance: Provenance
    kind: RequestKind = RequestKind.EMPATHIC
    model: str = ""  # Model that produced the text ("" for fallback)
    credential_index: int | None = None  # 0-based primary key used, if any
    latency_ms: int = 0
    rate_limited: bool = False  # Admission was denied for this request

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "provenance": self.provenance.value,
            "kind": self.kind.value,
            "model": self.model,
            "credential_index": self.credential_index,
            "latency_ms": self.latency_ms,
            "rate_limited": self.rate_limited,
        }


@dataclass
class PrimaryResult:
    """Outcome of one call to the primary provider."""

    ok: bool
    text: str = ""
    failure: FailureKind | None = None
    status_code: int = 0
    error_message: str = ""
    model: str = ""
    latency_ms: int = 0

    @property
    def quota_exceeded(self) -> bool:
        return self.failure == FailureKind.QUOTA_EXCEEDED

    def raise_for_failure(self) -> None:
        """Raise QuotaExceededError or TransientProviderError for a failed call."""
        if self.ok:
            return
        error_class = QuotaExceededError if self.quota_exceeded else TransientProviderError
        raise error_class(
            self.error_message or "Primary provider call failed",
            status_code=self.status_code,
            error_code=(self.failure or FailureKind.TRANSIENT).value,
        )


@dataclass
class SecondaryReply:
    """Text returned by the secondary provider client.

    ``canned`` is True when no model produced text (or no key is configured)
    and the client answered with its own kind-specific canned message.
    """

    text: str
    model: str = ""
    canned: bool = False


@dataclass
class Admission:
    """Rate limiter verdict for a new outbound call."""

    allowed: bool
    reason: str | None = None
    slot: float | None = None  # Reserved window timestamp; hand back via release() if unused


@dataclass
class CredentialStatus:
    """Observability view of one credential (never exposes the secret)."""

    index: int  # 1-based, as shown to operators
    available: bool
    cooldown_until: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "available": self.available,
            "cooldown_until": self.cooldown_until.isoformat() if self.cooldown_until else None,
        }


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@dataclass
class HealthSnapshot:
    """Aggregated result of one probe sweep over every credential."""

    working_keys: int = 0
    quota_exceeded: int = 0
    failed_keys: int = 0
    total_keys: int = 0
    available: bool = False
    error: str | None = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Cache markers, the only fields that differ between a fresh and a cached copy
    is_cached: bool = False
    cache_age_seconds: int = 0

    @property
    def service_health(self) -> str:
        """Operator-facing classification of the primary provider."""
        if not self.available:
            return "offline"
        if self.working_keys > 0:
            return "operational"
        if self.quota_exceeded > 0:
            return "quota_limited"
        return "degraded"

    @property
    def status(self) -> str:
        return {
            "operational": "online",
            "quota_limited": "warning",
        }.get(self.service_health, "offline")

    def to_dict(self) -> dict:
        return {
            "working_keys": self.working_keys,
            "quota_exceeded": self.quota_exceeded,
            "failed_keys": self.failed_keys,
            "total_keys": self.total_keys,
            "available": self.available,
            "error": self.error,
            "checked_at": self.checked_at.isoformat(),
            "is_cached": self.is_cached,
            "cache_age_seconds": self.cache_age_seconds,
            "service_health": self.service_health,
            "status": self.status,
        }


# ---------------------------------------------------------------------------
# Gateway config
# ---------------------------------------------------------------------------


DEFAULT_BACKUP_MODELS: tuple[str, ...] = (
    "google/gemma-3n-e4b-it",
    "openai/gpt-oss-20b",
    "openai/gpt-5-mini-2025-08-07",
    "zhipu/glm-4.5",
    "qwen3-235b-a22b-thinking-2507",
)


@dataclass
class GatewayConfig:
    """Limits and timeouts for the gateway components."""

    max_calls_per_5min: int = 10
    max_calls_per_hour: int = 50
    key_cooldown_seconds: float = 15 * 60
    health_cache_seconds: float = 10 * 60
    health_probe_timeout: float = 10.0
    generation_timeout: float = 30.0  # Primary generation request timeout
    backup_timeout: float = 30.0  # Per-model secondary request timeout
    max_concurrent_calls: int = 8  # In-flight primary-provider calls
    primary_model: str = "gemini-2.0-flash"
    primary_url_template: str = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    backup_base_url: str = "https://api.aimlapi.com/v1"
    backup_models: tuple[str, ...] = DEFAULT_BACKUP_MODELS
