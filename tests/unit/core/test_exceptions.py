"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from daggergm.core.exceptions import (
    AuthorizationError,
    ConfigurationError,
    ContentStoreError,
    DaggerGMError,
    EmbeddingError,
    InvalidStateTransitionError,
    LimitExceededError,
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    NotExpandedError,
    NotFoundError,
    PersistenceError,
    ReferenceResolutionError,
    TierViolationError,
    ValidationError,
)


class TestDaggerGMError:
    """Tests for the base DaggerGMError exception."""

    def test_basic_message(self) -> None:
        """Test exception with basic message."""
        exc = DaggerGMError("Test error message")
        assert exc.message == "Test error message"
        assert exc.details == {}
        assert str(exc) == "Test error message"

    def test_with_details(self) -> None:
        """Test exception with additional details."""
        exc = DaggerGMError("Test error", details={"key": "value", "count": 42})
        assert exc.details == {"key": "value", "count": 42}
        assert "key='value'" in str(exc)
        assert "count=42" in str(exc)

    def test_repr(self) -> None:
        """Test exception repr output."""
        repr_str = repr(DaggerGMError("Test", details={"x": 1}))
        assert "DaggerGMError" in repr_str
        assert "Test" in repr_str

    def test_caller_details_untouched(self) -> None:
        """Test keyword context is not written into the caller's dict."""
        details = {"source": "caller"}
        exc = ValidationError("bad", field_name="x", details=details)
        LimitExceededError("Limit", kind="scaffold", used=10, limit=10, details=details)
        DaggerGMError("Base", details=details).details["extra"] = 1
        assert details == {"source": "caller"}
        assert exc.details == {"source": "caller", "field_name": "x"}


class TestValidationExceptions:
    """Tests for validation-related exceptions."""

    def test_validation_error_fields(self) -> None:
        """Test ValidationError carries field context."""
        exc = ValidationError("Bad value", field_name="descriptions", invalid_value=0)
        assert exc.details["field_name"] == "descriptions"
        assert exc.details["invalid_value"] == 0

    def test_tier_violation_is_validation_error(self) -> None:
        """Test TierViolationError details and inheritance."""
        exc = TierViolationError(
            "Too strong",
            entity_name="Shadow Wyrm",
            tier=3,
            tier_ceiling=1,
        )
        assert isinstance(exc, ValidationError)
        assert exc.details["tier"] == 3
        assert exc.details["tier_ceiling"] == 1
        assert exc.details["field_name"] == "tier"

    def test_reference_resolution_error(self) -> None:
        """Test ReferenceResolutionError lists offered candidates."""
        exc = ReferenceResolutionError(
            "Unknown",
            category="adversary",
            reference="Goblin King",
            candidates=["Dire Wolf"],
        )
        assert exc.details["reference"] == "Goblin King"
        assert exc.details["candidates"] == ["Dire Wolf"]


class TestWorkflowExceptions:
    """Tests for workflow exceptions."""

    def test_limit_exceeded_attributes(self) -> None:
        """Test LimitExceededError exposes counts."""
        exc = LimitExceededError("Limit", kind="expansion", used=20, limit=20)
        assert exc.used == 20
        assert exc.limit == 20
        assert exc.details == {"kind": "expansion", "used": 20, "limit": 20}

    def test_not_expanded_is_state_error(self) -> None:
        """Test NotExpandedError fills in state context."""
        exc = NotExpandedError("No expansion", scene_id="s1")
        assert isinstance(exc, InvalidStateTransitionError)
        assert exc.details["scene_id"] == "s1"
        assert exc.details["current_state"] == "not_expanded"

    def test_not_found(self) -> None:
        """Test NotFoundError resource context."""
        exc = NotFoundError("Missing", resource="adventure", resource_id="a1")
        assert exc.details == {"resource": "adventure", "resource_id": "a1"}


class TestLLMExceptions:
    """Tests for LLM exceptions."""

    @pytest.mark.parametrize(
        "error_type",
        [LLMConnectionError, LLMRateLimitError, LLMResponseError],
    )
    def test_inheritance(self, error_type: type[LLMError]) -> None:
        """Test every LLM error is an LLMError."""
        exc = error_type("Failed", model="gpt-4o", provider="openai")
        assert isinstance(exc, LLMError)
        assert exc.details["model"] == "gpt-4o"
        assert exc.details["provider"] == "openai"


class TestHierarchy:
    """Tests that every engine error shares the base class."""

    @pytest.mark.parametrize(
        "error_type",
        [
            ConfigurationError,
            AuthorizationError,
            ContentStoreError,
            PersistenceError,
        ],
    )
    def test_plain_errors(self, error_type: type[DaggerGMError]) -> None:
        """Test plain subclasses accept message and details."""
        exc = error_type("Oops", details={"a": 1})
        assert isinstance(exc, DaggerGMError)
        assert exc.details == {"a": 1}

    def test_embedding_error_is_content_store_error(self) -> None:
        """Test EmbeddingError inheritance and model context."""
        exc = EmbeddingError("Down", model_name="text-embedding-3-small")
        assert isinstance(exc, ContentStoreError)
        assert exc.details["model_name"] == "text-embedding-3-small"
