"""Primary Provider Client — Google Gemini ``generateContent`` over REST.

Issues one generation request with the credential it is given and
classifies the outcome:
  - success: non-empty candidate text
  - QUOTA_EXCEEDED: HTTP 429, or a RESOURCE_EXHAUSTED / quota / rate-limit
    message in the error body
  - TRANSIENT: timeouts, transport errors, other non-2xx, SAFETY blocks,
    empty or malformed responses

No retries here — rotation and fallback policy live in the gateway.
In-flight calls are bounded by a semaphore; every call has a hard timeout.
"""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

from reflectai.gateway.types import FailureKind, PrimaryResult

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"
API_URL_TEMPLATE = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

HEALTH_PROBE_PROMPT = "Test"
HEALTH_PROBE_TIMEOUT = 10.0

_QUOTA_MARKERS = ("resource_exhausted", "quota", "rate limit", "429")


def is_quota_message(message: str) -> bool:
    """True when a provider error message signals quota/rate limiting."""
    lowered = (message or "").lower()
    return any(marker in lowered for marker in _QUOTA_MARKERS)


class GeminiClient:
    """Gemini REST client keyed per call.

    Usage:
        client = GeminiClient(model="gemini-2.0-flash")
        result = await client.generate(prompt, credential=key)
        if result.ok:
            ...
        elif result.quota_exceeded:
            # rotate credential
            ...
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        timeout: float = 30.0,
        max_concurrent: int = 8,
        api_url_template: str = API_URL_TEMPLATE,
        temperature: float = 0.7,
        max_output_tokens: int = 500,
    ):
        self.model = model
        self.timeout = timeout
        self.api_url_template = api_url_template
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._semaphore = asyncio.Semaphore(max_concurrent)

    @property
    def api_url(self) -> str:
        return self.api_url_template.format(model=self.model)

    async def generate(self, prompt: str, credential: str, timeout: float | None = None) -> PrimaryResult:
        """Send one generation request with ``credential``."""
        timeout = timeout or self.timeout
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

        async with self._semaphore:
            return await self._post(payload, credential, timeout)

    async def probe(self, credential: str, timeout: float = HEALTH_PROBE_TIMEOUT) -> PrimaryResult:
        """Minimal generation call used by the health prober."""
        payload = {"contents": [{"role": "user", "parts": [{"text": HEALTH_PROBE_PROMPT}]}]}
        async with self._semaphore:
            return await self._post(payload, credential, timeout)

    async def _post(self, payload: dict, credential: str, timeout: float) -> PrimaryResult:
        start = time.monotonic()
        result = PrimaryResult(ok=False, model=self.model)

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.post(
                    self.api_url,
                    json=payload,
                    params={"key": credential},
                    headers={"Content-Type": "application/json"},
                )

            result.latency_ms = int((time.monotonic() - start) * 1000)
            result.status_code = resp.status_code

            if resp.status_code == 429:
                result.failure = FailureKind.QUOTA_EXCEEDED
                result.error_message = "Rate limited by Google AI"
                return result

            if resp.status_code >= 400:
                body = resp.text
                result.failure = FailureKind.QUOTA_EXCEEDED if is_quota_message(body) else FailureKind.TRANSIENT
                result.error_message = f"Gemini returned HTTP {resp.status_code}: {body[:200]}"
                return result

            data = resp.json()
            return self._parse(data, result)

        except httpx.TimeoutException:
            result.failure = FailureKind.TRANSIENT
            result.error_message = f"Gemini timeout after {timeout}s"
        except httpx.HTTPError as e:
            result.failure = FailureKind.QUOTA_EXCEEDED if is_quota_message(str(e)) else FailureKind.TRANSIENT
            result.error_message = str(e)
        except ValueError as e:
            result.failure = FailureKind.TRANSIENT
            result.error_message = f"Malformed Gemini response: {e}"

        result.latency_ms = int((time.monotonic() - start) * 1000)
        return result

    @staticmethod
    def _parse(data: dict, result: PrimaryResult) -> PrimaryResult:
        """Extract candidate text from a 2xx generateContent body."""
        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason", "")
            result.failure = FailureKind.TRANSIENT
            result.error_message = (
                f"Prompt blocked: {block_reason}" if block_reason else "Gemini returned no candidates"
            )
            return result

        candidate = candidates[0]
        if candidate.get("finishReason") == "SAFETY":
            result.failure = FailureKind.TRANSIENT
            result.error_message = "Gemini safety filter triggered"
            return result

        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if "text" in p)
        if not text.strip():
            result.failure = FailureKind.TRANSIENT
            result.error_message = "Gemini returned empty text"
            return result

        result.ok = True
        result.text = text
        result.model = data.get("modelVersion", result.model)
        return result
