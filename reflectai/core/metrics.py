"""Prometheus metrics for the application."""

import time

from prometheus_client import Counter, Histogram, Info, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# --- Metrics ---

APP_INFO = Info("app", "Reflection AI gateway application info")
APP_INFO.info({"version": "1.0.0", "name": "reflectai"})

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
)

AI_GENERATIONS = Counter(
    "ai_generations_total",
    "Gateway results by request kind and provenance",
    ["kind", "provenance"],
)

AI_GENERATION_DURATION = Histogram(
    "ai_generation_duration_seconds",
    "End-to-end gateway generation time in seconds",
    ["kind"],
    buckets=[0.1, 0.25, 0.5, 1, 2.5, 5, 10, 20, 30, 60],
)

AI_PRIMARY_CALLS = Counter(
    "ai_primary_calls_total",
    "Primary provider calls by outcome",
    ["outcome"],  # success | quota_exceeded | transient
)

AI_KEY_ROTATIONS = Counter(
    "ai_key_rotations_total",
    "Credential rotations after quota exhaustion",
    ["result"],  # rotated | exhausted
)

AI_RATE_LIMITED = Counter(
    "ai_rate_limited_total",
    "Requests that skipped the primary provider because admission was denied",
)

AI_HEALTH_SWEEPS = Counter(
    "ai_health_sweeps_total",
    "Health probe sweeps over the credential set",
)


# --- Middleware ---


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect HTTP request metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = request.url.path

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        REQUEST_COUNT.labels(method=method, path=path, status=response.status_code).inc()
        REQUEST_DURATION.labels(method=method, path=path).observe(duration)

        return response


def metrics_response() -> Response:
    """Generate Prometheus /metrics response."""
    return Response(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
