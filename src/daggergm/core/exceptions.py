"""Custom exception hierarchy for the DaggerGM generation engine.

Every error raised by the engine inherits from DaggerGMError, which carries
a human-readable message plus a ``details`` dictionary. The server action
layer converts these exceptions into structured results, so the details
must contain everything a caller needs to render actionable guidance
(current counts, blocking scene ids, the unresolved reference, ...).

Example:
    >>> from daggergm.core.exceptions import LimitExceededError
    >>> raise LimitExceededError("Expansion budget exhausted", kind="expansion", used=20, limit=20)
"""

from __future__ import annotations

from typing import Any


class DaggerGMError(Exception):
    """Base exception for all DaggerGM errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = dict(details or {})
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(DaggerGMError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = dict(details or {})
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(DaggerGMError):
    """Raised when data validation fails.

    This covers malformed LLM output (missing or empty ``descriptions``,
    wrong JSON shape) as well as invalid caller input.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = dict(details or {})
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


class TierViolationError(ValidationError):
    """Raised when resolved content exceeds the party's tier ceiling.

    The tier is always checked against the Content Store row, never
    against a tier the LLM reported for itself.
    """

    def __init__(
        self,
        message: str,
        *,
        entity_name: str,
        tier: int,
        tier_ceiling: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = dict(details or {})
        combined_details["entity_name"] = entity_name
        combined_details["tier"] = tier
        combined_details["tier_ceiling"] = tier_ceiling
        super().__init__(message, field_name="tier", details=combined_details)


class ReferenceResolutionError(DaggerGMError):
    """Raised when the LLM cites a name absent from the candidate set.

    Unresolved references are never dropped silently: the whole
    generation attempt is rejected.
    """

    def __init__(
        self,
        message: str,
        *,
        category: str,
        reference: str,
        candidates: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize resolution error with reference context.

        Args:
            message: Human-readable error description.
            category: Content category the reference was expected in.
            reference: The name the LLM produced.
            candidates: Names that were offered to the LLM.
            details: Optional dictionary containing additional error context.
        """
        combined_details = dict(details or {})
        combined_details["category"] = category
        combined_details["reference"] = reference
        if candidates is not None:
            combined_details["candidates"] = candidates
        super().__init__(message, details=combined_details)


# =============================================================================
# Workflow Exceptions
# =============================================================================


class LimitExceededError(DaggerGMError):
    """Raised when a regeneration budget is exhausted."""

    def __init__(
        self,
        message: str,
        *,
        kind: str,
        used: int,
        limit: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize limit error with counter context.

        Args:
            message: Human-readable error description.
            kind: Budget kind ('scaffold' or 'expansion').
            used: Regenerations already used.
            limit: Maximum regenerations allowed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = dict(details or {})
        combined_details["kind"] = kind
        combined_details["used"] = used
        combined_details["limit"] = limit
        super().__init__(message, details=combined_details)
        self.kind = kind
        self.used = used
        self.limit = limit


class InvalidStateTransitionError(DaggerGMError):
    """Raised when a scene transition violates the confirmation lifecycle."""

    def __init__(
        self,
        message: str,
        *,
        scene_id: str | None = None,
        current_state: str | None = None,
        expected_states: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize transition error with state context.

        Args:
            message: Human-readable error description.
            scene_id: Scene whose transition was rejected.
            current_state: The scene's current state.
            expected_states: States from which the transition is allowed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = dict(details or {})
        if scene_id:
            combined_details["scene_id"] = scene_id
        if current_state:
            combined_details["current_state"] = current_state
        if expected_states:
            combined_details["expected_states"] = expected_states
        super().__init__(message, details=combined_details)


class NotExpandedError(InvalidStateTransitionError):
    """Raised when confirmation is attempted on a scene with no expansion."""

    def __init__(self, message: str, *, scene_id: str) -> None:
        super().__init__(
            message,
            scene_id=scene_id,
            current_state="not_expanded",
            expected_states=["expanded", "confirmed"],
        )


class NotFoundError(DaggerGMError):
    """Raised when an adventure or scene id is unknown."""

    def __init__(
        self,
        message: str,
        *,
        resource: str,
        resource_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = dict(details or {})
        combined_details["resource"] = resource
        combined_details["resource_id"] = resource_id
        super().__init__(message, details=combined_details)


class AuthorizationError(DaggerGMError):
    """Raised when the caller does not own the adventure."""


# =============================================================================
# Content & Persistence Exceptions
# =============================================================================


class ContentStoreError(DaggerGMError):
    """Raised when Content Store operations fail."""


class EmbeddingError(ContentStoreError):
    """Raised when text embedding generation fails.

    This typically occurs when the embedding model is unavailable or
    returns vectors of an unexpected dimension.
    """

    def __init__(
        self,
        message: str,
        *,
        model_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize embedding error with model context.

        Args:
            message: Human-readable error description.
            model_name: Name of the embedding model that failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = dict(details or {})
        if model_name:
            combined_details["model_name"] = model_name
        super().__init__(message, details=combined_details)


class PersistenceError(DaggerGMError):
    """Raised when the adventure record cannot be read or written."""


# =============================================================================
# LLM Exceptions
# =============================================================================


class LLMError(DaggerGMError):
    """Base exception for all LLM provider errors."""

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize LLM error with model context.

        Args:
            message: Human-readable error description.
            model: Name of the model involved.
            provider: Name of the provider (e.g., 'openai').
            details: Optional dictionary containing additional error context.
        """
        combined_details = dict(details or {})
        if model:
            combined_details["model"] = model
        if provider:
            combined_details["provider"] = provider
        super().__init__(message, details=combined_details)


class LLMConnectionError(LLMError):
    """Raised when the LLM service stays unreachable after retries."""


class LLMRateLimitError(LLMError):
    """Raised when the LLM service keeps rate limiting after retries."""


class LLMResponseError(LLMError):
    """Raised when the LLM service answers with an unusable response.

    Malformed responses are not retried with the same prompt.
    """


__all__ = [
    "DaggerGMError",
    # Configuration & validation
    "ConfigurationError",
    "ValidationError",
    "TierViolationError",
    "ReferenceResolutionError",
    # Workflow
    "LimitExceededError",
    "InvalidStateTransitionError",
    "NotExpandedError",
    "NotFoundError",
    "AuthorizationError",
    # Content & persistence
    "ContentStoreError",
    "EmbeddingError",
    "PersistenceError",
    # LLM
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMResponseError",
]
