"""Scene Expansion Engine.

Expanding a scene:

1. Check the expansion budget (before any LLM call).
2. Retrieve candidate content for the scene from the Content Store.
3. Ask the model for descriptions, narration, NPCs, adversaries,
   environment and loot, naming content only from the candidate lists.
4. Validate the output and resolve every name to a Content Store row.
5. Persist the unconfirmed expansion and increment the expansion counter
   in one transaction.

Any failure before step 5 leaves the adventure exactly as it was.

Refinement rewrites an existing unconfirmed expansion's prose following a
GM instruction and draws from the same expansion budget.
"""

from __future__ import annotations

from daggergm.content.retrieval import RetrievalService
from daggergm.core.config import GenerationSettings, get_settings
from daggergm.core.exceptions import InvalidStateTransitionError, ValidationError
from daggergm.core.logging import get_logger
from daggergm.generation.llm import LLMClient
from daggergm.generation.prompts import (
    EXPANSION_CATEGORIES,
    build_expansion_prompts,
    build_refinement_prompts,
    build_retrieval_query,
    temperature_for,
)
from daggergm.generation.resolver import ReferenceResolver, parse_descriptions, parse_narration
from daggergm.models.adventure import Adventure, SceneExpansion
from daggergm.models.enums import RegenerationKind, SceneState
from daggergm.storage.database import Database
from daggergm.workflow.budget import RegenerationBudget
from daggergm.workflow.confirmation import apply_expansion, require_expansion, require_unconfirmed

logger = get_logger(__name__)

MAX_INSTRUCTION_LENGTH = 1000


class SceneExpansionEngine:
    """Generates and refines scene expansions."""

    def __init__(
        self,
        database: Database,
        retrieval: RetrievalService,
        llm: LLMClient,
        *,
        resolver: ReferenceResolver | None = None,
        budget: RegenerationBudget | None = None,
        settings: GenerationSettings | None = None,
    ) -> None:
        self.database = database
        self.retrieval = retrieval
        self.llm = llm
        self.resolver = resolver or ReferenceResolver(retrieval.store)
        self.budget = budget or RegenerationBudget()
        self.settings = settings or get_settings().generation

    async def expand(self, adventure_id: str, scene_id: str) -> SceneExpansion:
        """Generate (or regenerate) a scene's expansion.

        Args:
            adventure_id: Adventure containing the scene.
            scene_id: Scene to expand.

        Returns:
            The persisted, unconfirmed expansion.

        Raises:
            NotFoundError: Unknown adventure or scene.
            LimitExceededError: Expansion budget exhausted.
            InvalidStateTransitionError: Scene is confirmed.
            ValidationError: Malformed output or over-tier content.
            ReferenceResolutionError: Output names content outside the candidates.
            EmbeddingError: Retrieval query could not be embedded.
            LLMError: The LLM call failed.
        """
        adventure = self.database.get_adventure(adventure_id)
        scene = adventure.get_scene(scene_id)
        self.budget.check_and_reserve(adventure, RegenerationKind.EXPANSION)
        require_unconfirmed(scene, "regenerate")

        candidates = await self.retrieval.retrieve_many(
            list(EXPANSION_CATEGORIES),
            build_retrieval_query(adventure, scene),
            adventure.party_level,
        )

        system_prompt, user_prompt = build_expansion_prompts(adventure, scene, candidates)
        data = await self.llm.complete_json(
            system_prompt,
            user_prompt,
            temperature=temperature_for(scene.type, self.settings),
        )

        expansion = self.resolver.resolve_expansion(
            data,
            candidates,
            party_level=adventure.party_level,
            tier_ceiling=adventure.tier_ceiling,
        )

        def mutate(current: Adventure) -> Adventure:
            updated = apply_expansion(current.get_scene(scene_id), expansion)
            return self.budget.commit(current, RegenerationKind.EXPANSION).with_scene(updated)

        stored = self.database.update_adventure(adventure_id, mutate)
        logger.info(
            "Scene expanded",
            adventure_id=adventure_id,
            scene_id=scene_id,
            scene_type=str(scene.type),
            npcs=len(expansion.npcs),
            adversaries=len(expansion.adversaries),
            loot=len(expansion.loot),
            expansion_regens_used=stored.expansion_regens_used,
        )
        return require_expansion(stored.get_scene(scene_id))

    async def refine(self, adventure_id: str, scene_id: str, instruction: str) -> SceneExpansion:
        """Rewrite an expansion's descriptions and narration.

        Resolved references (NPCs, adversaries, environment, loot) are kept.

        Raises:
            ValidationError: Blank or overlong instruction, or malformed output.
            NotExpandedError: Scene has no expansion.
            InvalidStateTransitionError: Scene is confirmed, or its expansion
                was changed while the refinement was running.
            LimitExceededError: Expansion budget exhausted.
            LLMError: The LLM call failed.
        """
        instruction = instruction.strip()
        if not instruction or len(instruction) > MAX_INSTRUCTION_LENGTH:
            raise ValidationError(
                f"Instruction must be 1-{MAX_INSTRUCTION_LENGTH} characters",
                field_name="instruction",
                invalid_value=len(instruction),
            )

        adventure = self.database.get_adventure(adventure_id)
        scene = adventure.get_scene(scene_id)
        expansion = require_expansion(scene)
        require_unconfirmed(scene, "refine")
        self.budget.check_and_reserve(adventure, RegenerationKind.EXPANSION)

        system_prompt, user_prompt = build_refinement_prompts(
            adventure, scene, expansion, instruction
        )
        data = await self.llm.complete_json(
            system_prompt,
            user_prompt,
            temperature=self.settings.refinement_temperature,
        )
        descriptions = parse_descriptions(data)
        narration = parse_narration(data)

        def mutate(current: Adventure) -> Adventure:
            current_scene = current.get_scene(scene_id)
            current_expansion = require_expansion(current_scene)
            require_unconfirmed(current_scene, "refine")
            if current_expansion != expansion:
                raise InvalidStateTransitionError(
                    "Expansion changed while it was being refined",
                    scene_id=scene_id,
                    current_state=str(SceneState.EXPANDED),
                )
            refined = current_expansion.evolve(descriptions=descriptions, narration=narration)
            updated = current_scene.evolve(expansion=refined)
            return self.budget.commit(current, RegenerationKind.EXPANSION).with_scene(updated)

        stored = self.database.update_adventure(adventure_id, mutate)
        logger.info(
            "Expansion refined",
            adventure_id=adventure_id,
            scene_id=scene_id,
            expansion_regens_used=stored.expansion_regens_used,
        )
        return require_expansion(stored.get_scene(scene_id))


__all__ = [
    "SceneExpansionEngine",
    "MAX_INSTRUCTION_LENGTH",
]
