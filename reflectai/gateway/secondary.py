"""Secondary Provider Client — OpenAI-compatible chat completions with a model cascade.

Used only when the primary path is rate-limited or exhausted. Tries an
ordered list of models, one request each, and returns the first non-empty
completion. When no model answers (or no API key is configured) it replies
with a canned, kind-specific message flagged ``canned=True``.

``generate_or_raise`` is the gateway's entry point: it raises instead of
returning canned text, so total secondary failure is never reported as a
backup response.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from reflectai.gateway.errors import ConfigurationError, ProviderUnavailableError
from reflectai.gateway.prompts import build_backup_prompt
from reflectai.gateway.sanitizer import (
    BACKUP_MAX_RESPONSE_LENGTH,
    BACKUP_MIN_SENTENCE_END,
    sanitize_response,
)
from reflectai.gateway.types import DEFAULT_BACKUP_MODELS, ChatTurn, RequestKind, SecondaryReply

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.aimlapi.com/v1"

# Sampling parameters sent with every request
SAMPLING_PARAMS = {
    "temperature": 0.7,
    "top_p": 0.7,
    "frequency_penalty": 1,
    "max_tokens": 500,
    "top_k": 50,
}

CANNED_REPLIES: dict[RequestKind, str] = {
    RequestKind.EMPATHIC: (
        "I hear you, and your feelings are completely valid. Thank you for trusting me with "
        "what's in your heart. You're not alone in this journey. 💜"
    ),
    RequestKind.COMPANION: (
        "I'm here to listen and support you. Your emotional wellbeing matters, and it's okay "
        "to feel whatever you're experiencing right now. How can I help you process these "
        "feelings?"
    ),
    RequestKind.MOOD_INSIGHT: (
        "Thank you for tracking your mood. Being mindful of your emotional patterns shows great "
        "self-awareness. Every feeling is valid and part of your journey. 🌟"
    ),
}


class BackupChatClient:
    """Chat-completions client for the secondary provider."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        models: Sequence[str] = DEFAULT_BACKUP_MODELS,
        timeout: float = 30.0,
    ):
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.models = tuple(models)
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    async def generate(
        self,
        content: str,
        kind: RequestKind,
        history: Sequence[ChatTurn] | None = None,
    ) -> SecondaryReply:
        """Generate a reply, or a canned one when no model answers."""
        if not self.configured:
            logger.warning("Backup AI key not configured, using canned %s reply", kind.value)
            return self.canned_reply(kind)

        reply = await self._cascade(content, kind, history or [])
        if reply is None:
            logger.error("All backup AI models failed, using canned %s reply", kind.value)
            return self.canned_reply(kind)
        return reply

    async def generate_or_raise(
        self,
        content: str,
        kind: RequestKind,
        history: Sequence[ChatTurn] | None = None,
    ) -> SecondaryReply:
        """Like ``generate`` but raises when there is no real completion."""
        if not self.configured:
            raise ConfigurationError("No API key configured for the backup AI provider")

        reply = await self._cascade(content, kind, history or [])
        if reply is None:
            raise ProviderUnavailableError(f"All {len(self.models)} backup AI models failed")
        return reply

    @staticmethod
    def canned_reply(kind: RequestKind) -> SecondaryReply:
        return SecondaryReply(text=CANNED_REPLIES[kind], canned=True)

    def _build_messages(self, content: str, kind: RequestKind, history: Sequence[ChatTurn]) -> list[dict]:
        messages = [
            {"role": "user" if turn.is_user else "assistant", "content": turn.content}
            for turn in history
            if turn.content
        ]
        messages.append({"role": "user", "content": build_backup_prompt(content, kind)})
        return messages

    async def _cascade(
        self,
        content: str,
        kind: RequestKind,
        history: Sequence[ChatTurn],
    ) -> SecondaryReply | None:
        """Try each model in order; None when every model failed."""
        messages = self._build_messages(content, kind, history)

        for position, model in enumerate(self.models, start=1):
            logger.info("Trying backup model: %s (%d/%d)", model, position, len(self.models))
            text = await self._complete(model, messages)
            if text:
                logger.info("Backup AI response generated successfully using %s", model)
                return SecondaryReply(
                    text=sanitize_response(
                        text,
                        max_length=BACKUP_MAX_RESPONSE_LENGTH,
                        min_sentence_end=BACKUP_MIN_SENTENCE_END,
                    ),
                    model=model,
                )

        return None

    async def _complete(self, model: str, messages: list[dict]) -> str | None:
        """One chat-completions request; None on any failure or empty content."""
        payload = {"model": model, "messages": messages, **SAMPLING_PARAMS}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.api_url,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                )

            if resp.status_code >= 400:
                logger.warning("Backup model %s failed with status: %d", model, resp.status_code)
                return None

            data = resp.json()
        except httpx.TimeoutException:
            logger.warning("Backup model %s timed out after %ss", model, self.timeout)
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Backup model %s failed: %s", model, e)
            return None

        text = _completion_text(data)
        if not text:
            logger.warning("Backup model %s returned no usable content", model)
            return None
        return text


def _completion_text(data) -> str:
    """First choice's message content, or "" when the body has another shape."""
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, list):
        # Some providers return content as a list of typed parts
        content = "".join(
            part.get("text", "") for part in content if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
    if not isinstance(content, str) or not content.strip():
        return ""
    return content
