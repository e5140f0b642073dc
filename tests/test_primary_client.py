"""Tests for the Gemini primary provider client (mocked HTTP)."""

from contextlib import contextmanager
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from reflectai.gateway.errors import QuotaExceededError, TransientProviderError
from reflectai.gateway.primary import GeminiClient, is_quota_message
from reflectai.gateway.types import FailureKind

API_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent"


def _make_httpx_response(status_code: int, json_data: dict | None = None, text: str = "") -> httpx.Response:
    request = httpx.Request("POST", API_URL)
    if json_data is not None:
        return httpx.Response(status_code, json=json_data, request=request)
    return httpx.Response(status_code, text=text, request=request)


def _gemini_body(text: str = "Hello", finish_reason: str = "STOP") -> dict:
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": text}]},
                "finishReason": finish_reason,
            }
        ],
        "modelVersion": "gemini-2.0-flash-001",
    }


@contextmanager
def _mock_http(response: httpx.Response | None = None, side_effect: Exception | None = None):
    with patch("reflectai.gateway.primary.httpx.AsyncClient") as mock_client_cls:
        mock_client = AsyncMock()
        if side_effect is not None:
            mock_client.post.side_effect = side_effect
        else:
            mock_client.post.return_value = response
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=None)
        mock_client_cls.return_value = mock_client
        yield mock_client_cls, mock_client


class TestGenerate:
    @pytest.mark.asyncio
    async def test_success(self):
        client = GeminiClient()
        with _mock_http(_make_httpx_response(200, _gemini_body("Hello"))) as (_, mock_client):
            result = await client.generate("prompt", credential="AIza-test")

        assert result.ok
        assert result.text == "Hello"
        assert result.model == "gemini-2.0-flash-001"
        assert result.failure is None
        result.raise_for_failure()

        call = mock_client.post.call_args
        assert call.args[0] == API_URL
        assert call.kwargs["params"] == {"key": "AIza-test"}
        assert call.kwargs["json"]["contents"][0]["parts"][0]["text"] == "prompt"

    @pytest.mark.asyncio
    async def test_timeout_applied(self):
        client = GeminiClient(timeout=12.5)
        with _mock_http(_make_httpx_response(200, _gemini_body())) as (mock_client_cls, _):
            await client.generate("prompt", credential="k")
        mock_client_cls.assert_called_once_with(timeout=12.5)

    @pytest.mark.asyncio
    async def test_429_is_quota(self):
        client = GeminiClient()
        with _mock_http(_make_httpx_response(429, text="rate limited")):
            result = await client.generate("prompt", credential="k")

        assert not result.ok
        assert result.failure == FailureKind.QUOTA_EXCEEDED
        assert result.quota_exceeded
        with pytest.raises(QuotaExceededError):
            result.raise_for_failure()

    @pytest.mark.asyncio
    async def test_resource_exhausted_message_is_quota(self):
        body = {"error": {"code": 403, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
        client = GeminiClient()
        with _mock_http(_make_httpx_response(403, body)):
            result = await client.generate("prompt", credential="k")
        assert result.failure == FailureKind.QUOTA_EXCEEDED

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self):
        client = GeminiClient()
        with _mock_http(_make_httpx_response(503, text="backend unavailable")):
            result = await client.generate("prompt", credential="k")

        assert result.failure == FailureKind.TRANSIENT
        assert result.status_code == 503
        with pytest.raises(TransientProviderError) as exc_info:
            result.raise_for_failure()
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self):
        client = GeminiClient()
        with _mock_http(side_effect=httpx.TimeoutException("timeout")):
            result = await client.generate("prompt", credential="k", timeout=5.0)
        assert result.failure == FailureKind.TRANSIENT
        assert "timeout" in result.error_message

    @pytest.mark.asyncio
    async def test_connect_error_is_transient(self):
        client = GeminiClient()
        with _mock_http(side_effect=httpx.ConnectError("connection refused")):
            result = await client.generate("prompt", credential="k")
        assert result.failure == FailureKind.TRANSIENT

    @pytest.mark.asyncio
    async def test_safety_block_is_transient(self):
        client = GeminiClient()
        with _mock_http(_make_httpx_response(200, _gemini_body("", finish_reason="SAFETY"))):
            result = await client.generate("prompt", credential="k")
        assert result.failure == FailureKind.TRANSIENT
        assert "safety" in result.error_message

    @pytest.mark.asyncio
    async def test_prompt_blocked(self):
        client = GeminiClient()
        with _mock_http(_make_httpx_response(200, {"promptFeedback": {"blockReason": "OTHER"}})):
            result = await client.generate("prompt", credential="k")
        assert result.failure == FailureKind.TRANSIENT
        assert result.error_message == "Prompt blocked: OTHER"

    @pytest.mark.asyncio
    async def test_empty_text_is_transient(self):
        client = GeminiClient()
        with _mock_http(_make_httpx_response(200, _gemini_body("   "))):
            result = await client.generate("prompt", credential="k")
        assert result.failure == FailureKind.TRANSIENT

    @pytest.mark.asyncio
    async def test_malformed_json_is_transient(self):
        client = GeminiClient()
        with _mock_http(_make_httpx_response(200, text="not json")):
            result = await client.generate("prompt", credential="k")
        assert result.failure == FailureKind.TRANSIENT


class TestProbe:
    @pytest.mark.asyncio
    async def test_probe_sends_minimal_prompt(self):
        client = GeminiClient()
        with _mock_http(_make_httpx_response(200, _gemini_body("ok"))) as (mock_client_cls, mock_client):
            result = await client.probe("k")

        assert result.ok
        mock_client_cls.assert_called_once_with(timeout=10.0)
        payload = mock_client.post.call_args.kwargs["json"]
        assert payload == {"contents": [{"role": "user", "parts": [{"text": "Test"}]}]}


@pytest.mark.parametrize(
    "message,expected",
    [
        ("429 Too Many Requests", True),
        ("RESOURCE_EXHAUSTED", True),
        ("You exceeded your current quota", True),
        ("Rate limit reached", True),
        ("Internal error", False),
        ("", False),
    ],
)
def test_is_quota_message(message, expected):
    assert is_quota_message(message) is expected
