"""Enumeration types for DaggerGM models."""

from __future__ import annotations

from enum import StrEnum


class ContentCategory(StrEnum):
    """Categories of canonical Daggerheart content."""

    ADVERSARY = "adversary"
    ENVIRONMENT = "environment"
    WEAPON = "weapon"
    ARMOR = "armor"
    ITEM = "item"
    CONSUMABLE = "consumable"
    CLASS = "class"
    ANCESTRY = "ancestry"
    COMMUNITY = "community"
    DOMAIN = "domain"
    ABILITY = "ability"
    FRAME = "frame"

    @property
    def is_tiered(self) -> bool:
        """Whether rows of this category carry a 1-3 tier."""
        return self in TIERED_CATEGORIES


TIERED_CATEGORIES = frozenset(
    {
        ContentCategory.ADVERSARY,
        ContentCategory.ENVIRONMENT,
        ContentCategory.WEAPON,
        ContentCategory.ARMOR,
    }
)


class SceneType(StrEnum):
    """Types of adventure scenes."""

    COMBAT = "combat"
    EXPLORATION = "exploration"
    SOCIAL = "social"
    PUZZLE = "puzzle"


class SceneState(StrEnum):
    """Confirmation lifecycle of a scene."""

    NOT_EXPANDED = "not_expanded"
    EXPANDED = "expanded"
    CONFIRMED = "confirmed"


class NPCRole(StrEnum):
    """Narrative role of a generated NPC."""

    ALLY = "ally"
    NEUTRAL = "neutral"
    ANTAGONIST = "antagonist"
    QUEST_GIVER = "quest_giver"


class LootType(StrEnum):
    """Kinds of loot, each backed by its own content category."""

    WEAPON = "weapon"
    ARMOR = "armor"
    ITEM = "item"
    CONSUMABLE = "consumable"

    @property
    def category(self) -> ContentCategory:
        """Content category loot of this type resolves against."""
        return ContentCategory(self.value)


class Difficulty(StrEnum):
    """Adventure difficulty relative to the party."""

    EASIER = "easier"
    STANDARD = "standard"
    HARDER = "harder"


class Stakes(StrEnum):
    """What is at risk in the adventure."""

    LOW = "low"
    PERSONAL = "personal"
    HIGH = "high"
    WORLD = "world"


class RegenerationKind(StrEnum):
    """Regeneration budget counters."""

    SCAFFOLD = "scaffold"
    EXPANSION = "expansion"


__all__ = [
    "ContentCategory",
    "TIERED_CATEGORIES",
    "SceneType",
    "SceneState",
    "NPCRole",
    "LootType",
    "Difficulty",
    "Stakes",
    "RegenerationKind",
]
