"""Pydantic V2 schemas for canonical rules content.

ContentEntity rows are created once by the seeding process and are never
mutated by the generation engine, so the model is frozen.
"""

from __future__ import annotations

import math
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from daggergm.core.constants import LEVELS_PER_TIER, MAX_TIER, MIN_TIER
from daggergm.models.enums import ContentCategory


def tier_ceiling(party_level: int) -> int:
    """Highest content tier appropriate for a party level.

    Levels 1-3 map to tier 1, 4-6 to tier 2 and 7 or more to tier 3.

    Args:
        party_level: Party level (1-10).

    Returns:
        The maximum allowed tier.
    """
    return max(MIN_TIER, min(math.ceil(party_level / LEVELS_PER_TIER), MAX_TIER))


class ContentEntity(BaseModel):
    """A canonical Daggerheart rules entity.

    Attributes:
        id: Unique entity identifier.
        category: Content category (adversary, weapon, class, ...).
        name: Name, unique within the category.
        tier: Power band 1-3; None for untiered categories.
        attributes: Category-specific attributes (hp, damage, features...).
        searchable_text: Text summary used for embeddings.
        embedding: Embedding vector of ``searchable_text``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid4()), description="Entity ID")
    category: ContentCategory = Field(description="Content category")
    name: str = Field(min_length=1, max_length=200, description="Canonical name")
    tier: int | None = Field(default=None, ge=MIN_TIER, le=MAX_TIER, description="Tier")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Category attributes")
    searchable_text: str = Field(default="", description="Embedding source text")
    embedding: tuple[float, ...] = Field(default=(), description="Embedding vector")

    @model_validator(mode="after")
    def validate_tier_for_category(self) -> "ContentEntity":
        """Tiered categories need a tier; untiered categories must not have one."""
        if self.category.is_tiered and self.tier is None:
            raise ValueError(f"{self.category} entity {self.name!r} requires a tier")
        if not self.category.is_tiered and self.tier is not None:
            raise ValueError(f"{self.category} entities are untiered, got tier {self.tier}")
        return self

    @property
    def description(self) -> str:
        """Short description from the category attributes, if any."""
        return str(self.attributes.get("description", ""))


class SearchHit(BaseModel):
    """One ranked retrieval result.

    Attributes:
        entity: The matched content entity.
        similarity: Cosine similarity to the query (higher is closer).
        rank: Position in the result list (1-indexed).
    """

    model_config = ConfigDict(frozen=True)

    entity: ContentEntity
    similarity: float
    rank: int = Field(ge=1)

    @property
    def id(self) -> str:
        return self.entity.id

    @property
    def name(self) -> str:
        return self.entity.name

    @property
    def tier(self) -> int | None:
        return self.entity.tier


__all__ = [
    "ContentEntity",
    "SearchHit",
    "tier_ceiling",
]
