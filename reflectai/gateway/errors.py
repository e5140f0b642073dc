"""Error taxonomy for the AI Response Gateway.

Provider-level errors are absorbed inside the gateway; only
``CallerInputError`` ever reaches a caller of the public operations.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for provider-side gateway errors."""

    def __init__(self, message: str, status_code: int = 0, error_code: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class QuotaExceededError(GatewayError):
    """Provider signalled rate or quota limiting (triggers rotation)."""


class TransientProviderError(GatewayError):
    """Network error, timeout or 5xx from a provider (no rotation)."""


class ConfigurationError(GatewayError):
    """No credentials are configured for a provider path."""


class ProviderUnavailableError(GatewayError):
    """Every model of the secondary provider failed or returned nothing."""


class CallerInputError(ValueError):
    """Missing or malformed caller input, rejected before any gateway logic."""
