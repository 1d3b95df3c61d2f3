"""Pydantic V2 schemas for the DaggerGM generation engine.

Submodules:
    enums: Enumeration types (ContentCategory, SceneType, SceneState, ...)
    content: Canonical rules content (ContentEntity, SearchHit)
    adventure: The adventure aggregate (Adventure, Scene, SceneExpansion, NPC, ...)
    results: Workflow and action results (ActionResult, ExportCheck, ...)

Example:
    >>> from daggergm.models import Adventure, Scene, SceneType
    >>> scene = Scene(title="The Blighted Gate", type=SceneType.COMBAT, order_index=0)
    >>> scene.state
    <SceneState.NOT_EXPANDED: 'not_expanded'>
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from daggergm.models.enums import (
    TIERED_CATEGORIES,
    ContentCategory,
    Difficulty,
    LootType,
    NPCRole,
    RegenerationKind,
    SceneState,
    SceneType,
    Stakes,
)

# =============================================================================
# Content
# =============================================================================
from daggergm.models.content import ContentEntity, SearchHit, tier_ceiling

# =============================================================================
# Adventure Aggregate
# =============================================================================
from daggergm.models.adventure import (
    NPC,
    Adventure,
    AdventureParams,
    AdversaryCustomizations,
    ContentReference,
    EquipmentReference,
    ExpansionEdit,
    LootItem,
    Scene,
    SceneAdversary,
    SceneEnvironment,
    SceneExpansion,
    new_id,
    utc_now,
)

# =============================================================================
# Results
# =============================================================================
from daggergm.models.results import (
    ActionResult,
    BudgetStatus,
    ErrorCode,
    ExportCheck,
    RegenerationCounts,
    error_code_for,
)


__all__ = [
    # Enums
    "ContentCategory",
    "TIERED_CATEGORIES",
    "SceneType",
    "SceneState",
    "NPCRole",
    "LootType",
    "Difficulty",
    "Stakes",
    "RegenerationKind",
    # Content
    "ContentEntity",
    "SearchHit",
    "tier_ceiling",
    # Adventure
    "Adventure",
    "AdventureParams",
    "Scene",
    "SceneExpansion",
    "NPC",
    "ContentReference",
    "EquipmentReference",
    "SceneAdversary",
    "AdversaryCustomizations",
    "SceneEnvironment",
    "LootItem",
    "ExpansionEdit",
    "new_id",
    "utc_now",
    # Results
    "ActionResult",
    "ErrorCode",
    "error_code_for",
    "BudgetStatus",
    "RegenerationCounts",
    "ExportCheck",
]
