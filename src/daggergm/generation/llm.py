"""LLM client producing JSON-constrained completions.

Every generation call in the engine goes through ``LLMClient.complete_json``:
one system prompt, one user prompt, a temperature, and a JSON object back.
Transient provider failures are retried by ``transient_retry``; malformed
output is never retried with the same prompt.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)

from daggergm.core.config import AIProviderSettings, get_settings
from daggergm.core.exceptions import (
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
    ValidationError,
)
from daggergm.core.logging import get_logger
from daggergm.core.retry import transient_retry

logger = get_logger(__name__)


class LLMClient(ABC):
    """Abstract JSON completion client."""

    model: str

    @abstractmethod
    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
    ) -> dict[str, Any]:
        """Request a completion and parse it as a JSON object.

        Raises:
            ValidationError: If the response is not a JSON object.
            LLMConnectionError: If the provider stays unreachable.
            LLMRateLimitError: If the provider keeps rate limiting.
            LLMResponseError: If the provider rejects the request.
        """


def parse_json_object(content: str | None, *, model: str) -> dict[str, Any]:
    """Parse a completion body that must be a single JSON object."""
    if not content or not content.strip():
        raise LLMResponseError("LLM returned an empty response", model=model)
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValidationError(
            f"LLM response is not valid JSON: {exc.msg}",
            field_name="response",
            details={"position": exc.pos},
        ) from exc
    if not isinstance(data, dict):
        raise ValidationError(
            "LLM response must be a JSON object",
            field_name="response",
            invalid_value=type(data).__name__,
        )
    return data


class OpenAILLMClient(LLMClient):
    """OpenAI chat completions in JSON mode.

    Example:
        >>> llm = OpenAILLMClient()
        >>> data = await llm.complete_json(system, user, temperature=0.75)
    """

    provider = "openai"

    def __init__(
        self,
        *,
        model: str | None = None,
        client: Any | None = None,
        ai_settings: AIProviderSettings | None = None,
        max_tokens: int | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            model: Chat model (defaults from settings).
            client: Pre-built AsyncOpenAI-compatible client.
            ai_settings: Provider settings (defaults from settings).
            max_tokens: Completion token cap (defaults from settings).
        """
        settings = get_settings()
        self._ai_settings = ai_settings or settings.ai
        self.model = model or self._ai_settings.chat_model
        self.max_tokens = max_tokens or settings.generation.max_tokens
        self._client = client

        logger.info("LLM client initialized", model=self.model, provider=self.provider)

    def _get_client(self) -> Any:
        """Get or create the OpenAI client."""
        if self._client is None:
            api_key = self._ai_settings.openai_api_key
            # tenacity owns retries; the SDK's own retry loop is disabled.
            self._client = AsyncOpenAI(
                api_key=api_key.get_secret_value() if api_key else None,
                base_url=self._ai_settings.base_url,
                timeout=self._ai_settings.timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float,
    ) -> dict[str, Any]:
        client = self._get_client()
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        @transient_retry(self._ai_settings)
        async def _call() -> Any:
            return await client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )

        try:
            response = await _call()
        except RateLimitError as exc:
            raise LLMRateLimitError(
                f"Rate limit exceeded after {self._ai_settings.max_attempts} attempts",
                model=self.model,
                provider=self.provider,
            ) from exc
        except InternalServerError as exc:
            raise LLMConnectionError(
                f"LLM service unavailable: {exc}",
                model=self.model,
                provider=self.provider,
                details={"status_code": exc.status_code},
            ) from exc
        except APIConnectionError as exc:
            raise LLMConnectionError(
                f"Failed to connect to LLM service: {exc}",
                model=self.model,
                provider=self.provider,
            ) from exc
        except APIStatusError as exc:
            raise LLMResponseError(
                f"LLM API error: {exc}",
                model=self.model,
                provider=self.provider,
                details={"status_code": exc.status_code},
            ) from exc

        if not response.choices:
            raise LLMResponseError("LLM returned no choices", model=self.model, provider=self.provider)

        data = parse_json_object(response.choices[0].message.content, model=self.model)
        usage = getattr(response, "usage", None)
        logger.debug(
            "LLM completion received",
            model=self.model,
            temperature=temperature,
            keys=sorted(data),
            total_tokens=getattr(usage, "total_tokens", None),
        )
        return data


__all__ = [
    "LLMClient",
    "OpenAILLMClient",
    "parse_json_object",
]
