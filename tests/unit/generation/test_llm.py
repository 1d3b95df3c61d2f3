"""Tests for the JSON-constrained LLM client."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from daggergm.core.config import AIProviderSettings
from daggergm.core.exceptions import (
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
    ValidationError,
)
from daggergm.generation.llm import OpenAILLMClient, parse_json_object


REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=42),
    )


def _status_error(error_type: type[openai.APIStatusError], status: int) -> openai.APIStatusError:
    return error_type("failure", response=httpx.Response(status, request=REQUEST), body=None)


@pytest.fixture
def client() -> MagicMock:
    mock_client = MagicMock()
    mock_client.chat.completions.create = AsyncMock()
    return mock_client


@pytest.fixture
def llm(client: MagicMock) -> OpenAILLMClient:
    return OpenAILLMClient(
        model="gpt-4o",
        client=client,
        ai_settings=AIProviderSettings(
            max_attempts=3,
            retry_backoff_seconds=0,
            retry_backoff_max_seconds=0,
        ),
        max_tokens=1024,
    )


class TestParseJsonObject:
    """Tests for parse_json_object."""

    def test_valid_object(self) -> None:
        """Test a JSON object is returned as a dict."""
        assert parse_json_object('{"title": "Grove"}', model="m") == {"title": "Grove"}

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_empty_response(self, content: str | None) -> None:
        """Test empty bodies raise LLMResponseError."""
        with pytest.raises(LLMResponseError):
            parse_json_object(content, model="m")

    def test_invalid_json(self) -> None:
        """Test malformed JSON raises ValidationError."""
        with pytest.raises(ValidationError):
            parse_json_object('{"title": ', model="m")

    def test_non_object(self) -> None:
        """Test JSON arrays are rejected."""
        with pytest.raises(ValidationError):
            parse_json_object("[1, 2]", model="m")


class TestOpenAILLMClient:
    """Tests for OpenAILLMClient.complete_json."""

    @pytest.mark.asyncio
    async def test_request_shape(self, llm: OpenAILLMClient, client: MagicMock) -> None:
        """Test JSON mode, temperature and token cap are sent."""
        client.chat.completions.create.return_value = _completion('{"ok": true}')

        data = await llm.complete_json("system", "user", temperature=0.5)

        assert data == {"ok": True}
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["temperature"] == 0.5
        assert kwargs["max_tokens"] == 1024
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]

    @pytest.mark.asyncio
    async def test_rate_limit_retried_then_succeeds(
        self,
        llm: OpenAILLMClient,
        client: MagicMock,
    ) -> None:
        """Test a transient rate limit is retried."""
        client.chat.completions.create.side_effect = [
            _status_error(openai.RateLimitError, 429),
            _completion('{"ok": true}'),
        ]

        assert await llm.complete_json("s", "u", temperature=0.7) == {"ok": True}
        assert client.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    async def test_rate_limit_exhausted(self, llm: OpenAILLMClient, client: MagicMock) -> None:
        """Test persistent rate limits raise LLMRateLimitError after three attempts."""
        client.chat.completions.create.side_effect = _status_error(openai.RateLimitError, 429)

        with pytest.raises(LLMRateLimitError):
            await llm.complete_json("s", "u", temperature=0.7)
        assert client.chat.completions.create.await_count == 3

    @pytest.mark.asyncio
    async def test_server_error_maps_to_connection_error(
        self,
        llm: OpenAILLMClient,
        client: MagicMock,
    ) -> None:
        """Test 5xx responses surface as LLMConnectionError."""
        client.chat.completions.create.side_effect = _status_error(openai.InternalServerError, 503)

        with pytest.raises(LLMConnectionError) as exc_info:
            await llm.complete_json("s", "u", temperature=0.7)
        assert exc_info.value.details["status_code"] == 503

    @pytest.mark.asyncio
    async def test_connection_error(self, llm: OpenAILLMClient, client: MagicMock) -> None:
        """Test network failures surface as LLMConnectionError."""
        client.chat.completions.create.side_effect = openai.APIConnectionError(request=REQUEST)

        with pytest.raises(LLMConnectionError):
            await llm.complete_json("s", "u", temperature=0.7)

    @pytest.mark.asyncio
    async def test_bad_request_not_retried(self, llm: OpenAILLMClient, client: MagicMock) -> None:
        """Test client errors fail once as LLMResponseError."""
        client.chat.completions.create.side_effect = _status_error(openai.BadRequestError, 400)

        with pytest.raises(LLMResponseError):
            await llm.complete_json("s", "u", temperature=0.7)
        assert client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_malformed_output_not_retried(
        self,
        llm: OpenAILLMClient,
        client: MagicMock,
    ) -> None:
        """Test invalid JSON fails validation without another call."""
        client.chat.completions.create.return_value = _completion("not json")

        with pytest.raises(ValidationError):
            await llm.complete_json("s", "u", temperature=0.7)
        assert client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_no_choices(self, llm: OpenAILLMClient, client: MagicMock) -> None:
        """Test an empty choices list."""
        client.chat.completions.create.return_value = SimpleNamespace(choices=[], usage=None)

        with pytest.raises(LLMResponseError):
            await llm.complete_json("s", "u", temperature=0.7)
