"""Retry policy for transient OpenAI failures.

Connection errors, timeouts, rate limits and 5xx responses are retried
with exponential backoff. Everything else (bad requests, malformed
output) fails on the first attempt.
"""

from __future__ import annotations

from typing import Any

from openai import APIConnectionError, APITimeoutError, InternalServerError, RateLimitError
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from daggergm.core.config import AIProviderSettings
from daggergm.core.logging import get_logger

logger = get_logger(__name__)

TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    APIConnectionError,
    APITimeoutError,
    RateLimitError,
    InternalServerError,
)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Transient OpenAI error, retrying",
        attempt=retry_state.attempt_number,
        error_type=type(exc).__name__ if exc else None,
    )


def transient_retry(settings: AIProviderSettings) -> Any:
    """Build a tenacity ``retry`` decorator from the provider settings.

    The last transient error is re-raised once attempts are exhausted so
    callers can map it to a domain error.
    """
    return retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(settings.max_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_seconds,
            max=settings.retry_backoff_max_seconds,
        ),
        before_sleep=_log_retry,
        reraise=True,
    )


__all__ = [
    "TRANSIENT_ERRORS",
    "transient_retry",
]
