"""Result types returned by the workflow layer and server actions."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from daggergm.core.exceptions import (
    AuthorizationError,
    ConfigurationError,
    DaggerGMError,
    EmbeddingError,
    ContentStoreError,
    InvalidStateTransitionError,
    LimitExceededError,
    LLMError,
    NotExpandedError,
    NotFoundError,
    PersistenceError,
    ReferenceResolutionError,
    TierViolationError,
    ValidationError,
)
from daggergm.models.enums import RegenerationKind


class ErrorCode(StrEnum):
    """Machine-readable failure codes carried by ActionResult."""

    VALIDATION_ERROR = "validation_error"
    TIER_VIOLATION = "tier_violation"
    REFERENCE_RESOLUTION_ERROR = "reference_resolution_error"
    LIMIT_EXCEEDED = "limit_exceeded"
    NOT_EXPANDED = "not_expanded"
    INVALID_STATE = "invalid_state"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    EXPORT_BLOCKED = "export_blocked"
    LLM_UNAVAILABLE = "llm_unavailable"
    EMBEDDING_UNAVAILABLE = "embedding_unavailable"
    CONTENT_STORE_ERROR = "content_store_error"
    PERSISTENCE_ERROR = "persistence_error"
    CONFIGURATION_ERROR = "configuration_error"
    INTERNAL_ERROR = "internal_error"


# Most specific classes first; the first isinstance match wins.
_ERROR_CODES: tuple[tuple[type[DaggerGMError], ErrorCode], ...] = (
    (TierViolationError, ErrorCode.TIER_VIOLATION),
    (ValidationError, ErrorCode.VALIDATION_ERROR),
    (ReferenceResolutionError, ErrorCode.REFERENCE_RESOLUTION_ERROR),
    (LimitExceededError, ErrorCode.LIMIT_EXCEEDED),
    (NotExpandedError, ErrorCode.NOT_EXPANDED),
    (InvalidStateTransitionError, ErrorCode.INVALID_STATE),
    (NotFoundError, ErrorCode.NOT_FOUND),
    (AuthorizationError, ErrorCode.UNAUTHORIZED),
    (EmbeddingError, ErrorCode.EMBEDDING_UNAVAILABLE),
    (ContentStoreError, ErrorCode.CONTENT_STORE_ERROR),
    (LLMError, ErrorCode.LLM_UNAVAILABLE),
    (PersistenceError, ErrorCode.PERSISTENCE_ERROR),
    (ConfigurationError, ErrorCode.CONFIGURATION_ERROR),
)


def error_code_for(exc: DaggerGMError) -> ErrorCode:
    """Map an engine exception to its ErrorCode."""
    for error_type, code in _ERROR_CODES:
        if isinstance(exc, error_type):
            return code
    return ErrorCode.INTERNAL_ERROR


class BudgetStatus(BaseModel):
    """Snapshot of one regeneration counter."""

    model_config = ConfigDict(frozen=True)

    kind: RegenerationKind
    used: int = Field(ge=0)
    limit: int = Field(ge=0)

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    @property
    def allowed(self) -> bool:
        return self.used < self.limit


class RegenerationCounts(BaseModel):
    """Used and remaining regenerations for both budgets."""

    model_config = ConfigDict(frozen=True)

    scaffold_used: int
    scaffold_remaining: int
    expansion_used: int
    expansion_remaining: int


class ExportCheck(BaseModel):
    """Outcome of the export gate.

    Attributes:
        allowed: True only if every scene is confirmed.
        blocking_scenes: Ids of scenes that are not confirmed, in scene order.
    """

    model_config = ConfigDict(frozen=True)

    allowed: bool
    blocking_scenes: list[str] = Field(default_factory=list)


class ActionResult(BaseModel):
    """Structured outcome of a server action.

    Actions never raise engine errors to the caller. A failure carries an
    ErrorCode, the human-readable message and the error details (current
    counts for limit errors, the unresolved reference, blocking scenes...).
    """

    success: bool
    data: dict[str, Any] = Field(default_factory=dict)
    error: ErrorCode | None = None
    message: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, **data: Any) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def from_error(cls, exc: DaggerGMError) -> "ActionResult":
        """Build a failed result from an engine exception."""
        return cls(
            success=False,
            error=error_code_for(exc),
            message=exc.message,
            details=dict(exc.details),
        )

    @classmethod
    def failure(
        cls,
        error: ErrorCode,
        message: str,
        *,
        details: dict[str, Any] | None = None,
    ) -> "ActionResult":
        return cls(success=False, error=error, message=message, details=details or {})


__all__ = [
    "ErrorCode",
    "error_code_for",
    "BudgetStatus",
    "RegenerationCounts",
    "ExportCheck",
    "ActionResult",
]
