import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from reflectai.api.v1.router import api_v1_router
from reflectai.core.config import settings, validate_settings_for_production
from reflectai.core.logging import setup_logging
from reflectai.core.metrics import PrometheusMiddleware, metrics_response
from reflectai.core.rate_limit import limiter
from reflectai.core.sentry import init_sentry
from reflectai.gateway.errors import CallerInputError
from reflectai.gateway.gateway import AiResponseGateway

# Configure logging before anything else
setup_logging()
init_sentry()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    validate_settings_for_production()
    logger.info("Starting Reflection AI gateway...")

    app.state.gateway = AiResponseGateway.from_settings(settings)
    gateway = app.state.gateway
    logger.info(
        "AI gateway ready: %d primary keys, backup %s",
        len(gateway.rotator),
        "configured" if gateway.secondary.configured else "not configured",
    )

    yield

    # Shutdown
    logger.info("Reflection AI gateway shut down")


app = FastAPI(
    title="Reflection AI",
    description="Empathetic AI responses with key rotation, backup provider and contextual fallbacks",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.app_debug else None,
    redoc_url="/api/redoc" if settings.app_debug else None,
)


@app.exception_handler(CallerInputError)
async def _caller_input_handler(request: Request, exc: CallerInputError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# Log unhandled exceptions with a traceback
@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled %s on %s %s:\n%s", type(exc).__name__, request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"detail": f"{type(exc).__name__}: {exc}"})


# Rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Request metrics
app.add_middleware(PrometheusMiddleware)

# CORS: parse allowed_origins from settings (comma-separated)
_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials="*" not in _origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(api_v1_router)


@app.get("/api/v1/health")
async def health():
    gateway = getattr(app.state, "gateway", None)
    cached = gateway.get_cached_health() if gateway else None
    return {
        "status": "ok",
        "ai_gateway": gateway is not None,
        "ai_status": cached.status if cached else "unknown",
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_response()
