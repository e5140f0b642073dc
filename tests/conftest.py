from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from reflectai.core.config import settings

# Override settings for tests
settings.app_env = "test"
settings.sentry_dsn = ""

from reflectai.api.v1.ai import get_gateway  # noqa: E402
from reflectai.core.rate_limit import limiter  # noqa: E402
from reflectai.gateway.gateway import AiResponseGateway  # noqa: E402
from reflectai.main import app  # noqa: E402
from tests.fakes import FakeClock, build_gateway  # noqa: E402

# Per-IP limits would trip across the API tests, which all share one client address
limiter.enabled = False


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway_factory(clock):
    def _factory(**kwargs) -> AiResponseGateway:
        kwargs.setdefault("clock", clock)
        return build_gateway(**kwargs)

    return _factory


@pytest.fixture
async def client_for(gateway_factory) -> AsyncGenerator:
    """Factory for an HTTP client bound to a given gateway."""
    clients: list[AsyncClient] = []

    async def _make(gateway: AiResponseGateway | None = None) -> AsyncClient:
        gateway = gateway or gateway_factory()
        app.dependency_overrides[get_gateway] = lambda: gateway
        app.state.gateway = gateway
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
    app.dependency_overrides.clear()
