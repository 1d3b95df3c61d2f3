"""Tests for content entities, tiers and result types."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from daggergm.core.exceptions import (
    DaggerGMError,
    EmbeddingError,
    LimitExceededError,
    LLMRateLimitError,
    NotExpandedError,
    TierViolationError,
    ValidationError,
)
from daggergm.models import (
    ActionResult,
    BudgetStatus,
    ContentCategory,
    ContentEntity,
    ErrorCode,
    LootType,
    RegenerationKind,
    error_code_for,
    tier_ceiling,
)


class TestTierCeiling:
    """Tests for the party level to tier mapping."""

    @pytest.mark.parametrize(
        ("level", "expected"),
        [(1, 1), (2, 1), (3, 1), (4, 2), (6, 2), (7, 3), (9, 3), (10, 3)],
    )
    def test_mapping(self, level: int, expected: int) -> None:
        """Test level bands map to tiers 1-3."""
        assert tier_ceiling(level) == expected


class TestContentCategory:
    """Tests for ContentCategory."""

    def test_tiered_categories(self) -> None:
        """Test which categories carry tiers."""
        assert ContentCategory.ADVERSARY.is_tiered
        assert ContentCategory.WEAPON.is_tiered
        assert not ContentCategory.CLASS.is_tiered
        assert not ContentCategory.CONSUMABLE.is_tiered

    def test_loot_type_category(self) -> None:
        """Test each loot type maps to its content category."""
        assert LootType.ARMOR.category == ContentCategory.ARMOR
        assert LootType.ITEM.category == ContentCategory.ITEM


class TestContentEntity:
    """Tests for ContentEntity validation."""

    def test_tiered_entity_requires_tier(self) -> None:
        """Test adversaries need a tier."""
        with pytest.raises(PydanticValidationError):
            ContentEntity(category=ContentCategory.ADVERSARY, name="Dire Wolf")

    def test_untiered_entity_rejects_tier(self) -> None:
        """Test classes cannot carry a tier."""
        with pytest.raises(PydanticValidationError):
            ContentEntity(category=ContentCategory.CLASS, name="Ranger", tier=1)

    @pytest.mark.parametrize("tier", [0, 4])
    def test_tier_range(self, tier: int) -> None:
        """Test tiers are 1-3."""
        with pytest.raises(PydanticValidationError):
            ContentEntity(category=ContentCategory.WEAPON, name="Shortbow", tier=tier)

    def test_description_from_attributes(self) -> None:
        """Test description is read from attributes."""
        entity = ContentEntity(
            category=ContentCategory.ITEM,
            name="Ancient Map",
            attributes={"description": "A map."},
        )

        assert entity.description == "A map."
        assert entity.tier is None


class TestErrorCodes:
    """Tests for exception to ErrorCode mapping."""

    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (ValidationError("bad"), ErrorCode.VALIDATION_ERROR),
            (
                TierViolationError("tier", entity_name="Shadow Wyrm", tier=3, tier_ceiling=1),
                ErrorCode.TIER_VIOLATION,
            ),
            (LimitExceededError("limit", kind="scaffold", used=10, limit=10), ErrorCode.LIMIT_EXCEEDED),
            (NotExpandedError("none", scene_id="s1"), ErrorCode.NOT_EXPANDED),
            (EmbeddingError("down"), ErrorCode.EMBEDDING_UNAVAILABLE),
            (LLMRateLimitError("slow down"), ErrorCode.LLM_UNAVAILABLE),
            (DaggerGMError("unknown"), ErrorCode.INTERNAL_ERROR),
        ],
    )
    def test_mapping(self, exc: DaggerGMError, code: ErrorCode) -> None:
        """Test the most specific code wins."""
        assert error_code_for(exc) == code


class TestActionResult:
    """Tests for ActionResult construction."""

    def test_ok(self) -> None:
        """Test a successful result carries data."""
        result = ActionResult.ok(scene={"id": "s1"})

        assert result.success is True
        assert result.data == {"scene": {"id": "s1"}}
        assert result.error is None

    def test_from_error_keeps_details(self) -> None:
        """Test limit counts are exposed on failure."""
        exc = LimitExceededError("Limit reached", kind="expansion", used=20, limit=20)

        result = ActionResult.from_error(exc)

        assert result.success is False
        assert result.error == ErrorCode.LIMIT_EXCEEDED
        assert result.message == "Limit reached"
        assert result.details["used"] == 20
        assert result.details["limit"] == 20


class TestBudgetStatus:
    """Tests for BudgetStatus."""

    def test_remaining_and_allowed(self) -> None:
        """Test derived values."""
        status = BudgetStatus(kind=RegenerationKind.SCAFFOLD, used=9, limit=10)
        assert status.remaining == 1
        assert status.allowed is True

        exhausted = BudgetStatus(kind=RegenerationKind.SCAFFOLD, used=10, limit=10)
        assert exhausted.remaining == 0
        assert exhausted.allowed is False
