"""DaggerGM - Daggerheart adventure content generation engine.

Generates tabletop adventures with an LLM, grounded in a curated
Daggerheart rules database.

GROUNDED GENERATION:
- The Content Store owns the rules content (adversaries, items, classes...)
- The LLM writes prose and may only cite content it was offered by name
- Every cited name is resolved to a stored entity and tier-checked
- The GM confirms each scene; only fully confirmed adventures export

Example:
    >>> from daggergm import AdventureActions, AdventureParams
    >>>
    >>> actions = AdventureActions.create()
    >>> result = await actions.generate_scaffold(
    ...     user_id, AdventureParams(frame="witherwild", focus="A blighted grove", party_level=2)
    ... )
    >>> adventure_id = result.data["adventure"]["id"]
    >>> scene_id = result.data["adventure"]["scenes"][0]["id"]
    >>> await actions.expand_scene(user_id, adventure_id, scene_id)
    >>> await actions.confirm_expansion(user_id, adventure_id, scene_id)

Modules:
    core: Configuration, logging, retry policy and exceptions.
    models: Pydantic V2 schemas (Adventure, Scene, SceneExpansion, ContentEntity).
    storage: SQLite persistence for content and adventures.
    content: Content Store, embeddings, seeding and semantic retrieval.
    generation: LLM client, prompts, scaffold and expansion engines.
    workflow: Regeneration budget, confirmation, export gate, server actions.
"""

from __future__ import annotations

# Core
from daggergm.core.config import Settings, get_settings
from daggergm.core.exceptions import DaggerGMError
from daggergm.core.logging import configure_logging, get_logger

# Models
from daggergm.models import (
    ActionResult,
    Adventure,
    AdventureParams,
    ErrorCode,
    ExpansionEdit,
    Scene,
    SceneExpansion,
    SceneState,
    SceneType,
)

# Server actions
from daggergm.workflow.actions import AdventureActions


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "DaggerGMError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "Adventure",
    "AdventureParams",
    "Scene",
    "SceneExpansion",
    "SceneState",
    "SceneType",
    "ExpansionEdit",
    "ActionResult",
    "ErrorCode",
    # Actions
    "AdventureActions",
]
