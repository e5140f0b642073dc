"""Test doubles shared by the gateway and API tests."""

from reflectai.gateway.credentials import CredentialRotator
from reflectai.gateway.errors import ConfigurationError, ProviderUnavailableError
from reflectai.gateway.fallback import ContextualFallbackGenerator
from reflectai.gateway.gateway import AiResponseGateway
from reflectai.gateway.health import HealthProber
from reflectai.gateway.rate_limiter import CallRateLimiter
from reflectai.gateway.types import FailureKind, PrimaryResult, SecondaryReply


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def ok(text: str = "Hello") -> PrimaryResult:
    return PrimaryResult(ok=True, text=text, status_code=200, model="gemini-2.0-flash")


def quota() -> PrimaryResult:
    return PrimaryResult(
        ok=False,
        failure=FailureKind.QUOTA_EXCEEDED,
        status_code=429,
        error_message="Rate limited by Google AI",
    )


def transient() -> PrimaryResult:
    return PrimaryResult(
        ok=False,
        failure=FailureKind.TRANSIENT,
        status_code=503,
        error_message="Gemini returned HTTP 503: unavailable",
    )


class StubPrimary:
    """Primary client answering per credential; records every call."""

    def __init__(self, behaviour: dict[str, PrimaryResult] | None = None, default: PrimaryResult | None = None):
        self.behaviour = behaviour or {}
        self.default = default or ok()
        self.calls: list[str] = []
        self.probes: list[str] = []

    async def generate(self, prompt: str, credential: str, timeout: float | None = None) -> PrimaryResult:
        self.calls.append(credential)
        return self.behaviour.get(credential, self.default)

    async def probe(self, credential: str, timeout: float = 10.0) -> PrimaryResult:
        self.probes.append(credential)
        return self.behaviour.get(credential, self.default)


class StubSecondary:
    """Secondary client returning fixed text, or raising like the real one."""

    def __init__(self, text: str | None = "Backup text", configured: bool = True):
        self.text = text
        self.configured = configured
        self.calls: list[tuple] = []

    async def generate_or_raise(self, content, kind, history=None) -> SecondaryReply:
        self.calls.append((content, kind, list(history or [])))
        if not self.configured:
            raise ConfigurationError("No API key configured for the backup AI provider")
        if self.text is None:
            raise ProviderUnavailableError("All 5 backup AI models failed")
        return SecondaryReply(text=self.text, model="google/gemma-3n-e4b-it")


def build_gateway(
    credentials=("K1", "K2"),
    primary: StubPrimary | None = None,
    secondary: StubSecondary | None = None,
    clock: FakeClock | None = None,
    max_per_5min: int = 10,
    max_per_hour: int = 50,
) -> AiResponseGateway:
    clock = clock or FakeClock()
    primary = primary or StubPrimary()
    rotator = CredentialRotator(list(credentials), cooldown_seconds=900, clock=clock)
    return AiResponseGateway(
        rotator=rotator,
        rate_limiter=CallRateLimiter(max_per_5min=max_per_5min, max_per_hour=max_per_hour, clock=clock),
        primary=primary,
        secondary=secondary or StubSecondary(),
        fallback=ContextualFallbackGenerator(),
        health=HealthProber(rotator, primary, cache_seconds=600, clock=clock),
    )

