import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

from reflectai.gateway.types import DEFAULT_BACKUP_MODELS, GatewayConfig

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Primary provider (Google Gemini): up to four numbered keys plus an optional list
    gemini_api_key: str = ""
    gemini_api_key_2: str = ""
    gemini_api_key_3: str = ""
    gemini_api_key_4: str = ""
    gemini_api_keys: str = ""  # comma-separated, appended after the numbered keys
    gemini_model: str = "gemini-2.0-flash"
    gemini_api_url_template: str = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    @property
    def primary_credentials(self) -> list[str]:
        """Configured primary keys in order, blanks and duplicates removed."""
        candidates = [
            self.gemini_api_key,
            self.gemini_api_key_2,
            self.gemini_api_key_3,
            self.gemini_api_key_4,
            *self.gemini_api_keys.split(","),
        ]
        keys: list[str] = []
        for key in candidates:
            key = key.strip()
            if key and key not in keys:
                keys.append(key)
        return keys

    # Secondary provider (OpenAI-compatible chat completions)
    backup_ai_key: str = ""
    backup_ai_base_url: str = "https://api.aimlapi.com/v1"
    backup_ai_models: str = ""  # comma-separated override of the default model cascade

    @property
    def backup_models(self) -> tuple[str, ...]:
        models = tuple(m.strip() for m in self.backup_ai_models.split(",") if m.strip())
        return models or DEFAULT_BACKUP_MODELS

    # Gateway limits
    ai_rate_limit_5min: int = 10
    ai_rate_limit_hour: int = 50
    ai_key_cooldown_seconds: int = 15 * 60
    ai_health_cache_seconds: int = 10 * 60
    ai_health_probe_timeout: float = 10.0
    ai_generation_timeout: float = 30.0
    ai_backup_timeout: float = 30.0
    ai_max_concurrent_calls: int = 8

    def gateway_config(self) -> GatewayConfig:
        return GatewayConfig(
            max_calls_per_5min=self.ai_rate_limit_5min,
            max_calls_per_hour=self.ai_rate_limit_hour,
            key_cooldown_seconds=self.ai_key_cooldown_seconds,
            health_cache_seconds=self.ai_health_cache_seconds,
            health_probe_timeout=self.ai_health_probe_timeout,
            generation_timeout=self.ai_generation_timeout,
            backup_timeout=self.ai_backup_timeout,
            max_concurrent_calls=self.ai_max_concurrent_calls,
            primary_model=self.gemini_model,
            primary_url_template=self.gemini_api_url_template,
            backup_base_url=self.backup_ai_base_url,
            backup_models=self.backup_models,
        )

    # App
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # CORS
    allowed_origins: str = "*"  # comma-separated, e.g. "https://app.example.com,https://admin.example.com"

    # Per-client limit on the generation endpoints (slowapi syntax)
    http_rate_limit: str = "30/minute"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup in non-test environments."""
    errors: list[str] = []

    if settings.app_env == "production":
        if settings.allowed_origins == "*":
            errors.append("ALLOWED_ORIGINS must not be '*' in production")
        if settings.app_debug:
            errors.append("APP_DEBUG must be false in production")

    if settings.ai_rate_limit_5min > settings.ai_rate_limit_hour:
        errors.append("AI_RATE_LIMIT_5MIN must not exceed AI_RATE_LIMIT_HOUR")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))

    if not settings.primary_credentials and not settings.backup_ai_key:
        logger.warning("No AI provider keys configured — every response will be a canned fallback")
