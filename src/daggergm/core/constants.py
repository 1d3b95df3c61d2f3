"""Application-wide constants for DaggerGM.

This module defines the fixed limits of the generation engine: regeneration
budgets, scene counts, tier bands and expansion shape.
"""

from __future__ import annotations

# =============================================================================
# Regeneration Budgets
# =============================================================================

SCAFFOLD_REGENERATION_LIMIT = 10
"""Maximum scaffold regenerations per adventure."""

EXPANSION_REGENERATION_LIMIT = 20
"""Maximum expansion regenerations (including refinements) per adventure."""

# =============================================================================
# Adventure Shape
# =============================================================================

MIN_SCENES = 3
"""Minimum number of scenes in an adventure."""

MAX_SCENES = 5
"""Maximum number of scenes in an adventure."""

MIN_PARTY_SIZE = 1
MAX_PARTY_SIZE = 6

MIN_PARTY_LEVEL = 1
MAX_PARTY_LEVEL = 10

MAX_FOCUS_LENGTH = 100
"""Maximum length of the adventure focus text."""

# =============================================================================
# Tiers
# =============================================================================

MIN_TIER = 1
MAX_TIER = 3

LEVELS_PER_TIER = 3
"""Party levels 1-3 map to tier 1, 4-6 to tier 2, 7+ to tier 3."""

# =============================================================================
# Expansion Shape
# =============================================================================

MIN_DESCRIPTIONS = 3
MAX_DESCRIPTIONS = 5

NPC_BASE_STRESS = 6
"""Stress slots every generated NPC starts with."""

# =============================================================================
# Embeddings
# =============================================================================

EMBEDDING_DIMENSION = 1536
"""Dimension of text-embedding-3-small vectors."""


__all__ = [
    "SCAFFOLD_REGENERATION_LIMIT",
    "EXPANSION_REGENERATION_LIMIT",
    "MIN_SCENES",
    "MAX_SCENES",
    "MIN_PARTY_SIZE",
    "MAX_PARTY_SIZE",
    "MIN_PARTY_LEVEL",
    "MAX_PARTY_LEVEL",
    "MAX_FOCUS_LENGTH",
    "MIN_TIER",
    "MAX_TIER",
    "LEVELS_PER_TIER",
    "MIN_DESCRIPTIONS",
    "MAX_DESCRIPTIONS",
    "NPC_BASE_STRESS",
    "EMBEDDING_DIMENSION",
]
