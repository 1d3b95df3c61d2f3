"""Scaffold generation: the ordered scene outline of an adventure.

A new scaffold is produced by a single JSON-constrained LLM call and is
free. Rewriting scenes of an existing scaffold (one scene, or every
unlocked scene at once) consumes one scaffold regeneration per call.

Regenerated scenes keep their id, position and lock flag. Any expansion
they had is dropped, since it described the old outline; confirmed scenes
must be unconfirmed before they can be regenerated.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from daggergm.core.config import GenerationSettings, get_settings
from daggergm.core.constants import MAX_SCENES, MIN_SCENES
from daggergm.core.exceptions import ValidationError
from daggergm.core.logging import get_logger
from daggergm.generation.llm import LLMClient
from daggergm.generation.prompts import build_scaffold_prompts, build_scene_regeneration_prompts
from daggergm.models.adventure import Adventure, AdventureParams, Scene, new_id
from daggergm.models.enums import RegenerationKind, SceneType
from daggergm.storage.database import Database
from daggergm.workflow.budget import RegenerationBudget
from daggergm.workflow.confirmation import clear_expansion, require_unconfirmed

logger = get_logger(__name__)


class SceneOutline(BaseModel):
    """One scene outline as returned by the model."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=200)
    type: SceneType
    description: str = Field(default="", max_length=5000)
    estimated_time: str | None = Field(default=None, max_length=100)


class ScaffoldDraft(BaseModel):
    """A generated, not yet persisted, adventure scaffold."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    scenes: tuple[Scene, ...]


def parse_outline(raw: Any) -> SceneOutline:
    """Validate one raw scene outline.

    Raises:
        ValidationError: If the outline is malformed.
    """
    if not isinstance(raw, dict):
        raise ValidationError("Scene outline must be an object", field_name="scenes")
    scene_type = str(raw.get("type", "")).strip().lower()
    try:
        return SceneOutline(
            title=str(raw.get("title") or "").strip(),
            type=scene_type,
            description=str(raw.get("description") or "").strip(),
            estimated_time=str(raw.get("estimated_time") or "").strip() or None,
        )
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        raise ValidationError(
            f"Invalid scene outline: {error['msg']}",
            field_name=".".join(str(part) for part in error["loc"]) or "scenes",
            invalid_value=raw.get("title"),
        ) from exc


def _apply_outline(scene: Scene, outline: SceneOutline) -> Scene:
    return clear_expansion(scene).evolve(
        title=outline.title,
        type=outline.type,
        description=outline.description,
        estimated_time=outline.estimated_time,
    )


class ScaffoldGenerator:
    """Generates and regenerates adventure scaffolds."""

    def __init__(
        self,
        database: Database,
        llm: LLMClient,
        *,
        budget: RegenerationBudget | None = None,
        settings: GenerationSettings | None = None,
    ) -> None:
        self.database = database
        self.llm = llm
        self.budget = budget or RegenerationBudget()
        self.settings = settings or get_settings().generation

    # =========================================================================
    # New Scaffolds
    # =========================================================================

    async def generate(self, params: AdventureParams) -> ScaffoldDraft:
        """Generate a scaffold without persisting it.

        Raises:
            ValidationError: If the model output is malformed.
            LLMError: If the LLM call fails.
        """
        scene_count = params.scene_count or self.settings.default_scene_count
        system_prompt, user_prompt = build_scaffold_prompts(params, scene_count)
        data = await self.llm.complete_json(
            system_prompt,
            user_prompt,
            temperature=self.settings.scaffold_temperature,
        )

        raw_scenes = data.get("scenes")
        if not isinstance(raw_scenes, list) or not MIN_SCENES <= len(raw_scenes) <= MAX_SCENES:
            raise ValidationError(
                f"Scaffold must contain {MIN_SCENES}-{MAX_SCENES} scenes",
                field_name="scenes",
                invalid_value=len(raw_scenes) if isinstance(raw_scenes, list) else None,
            )
        if len(raw_scenes) != scene_count:
            logger.warning(
                "Scaffold scene count differs from request",
                requested=scene_count,
                returned=len(raw_scenes),
            )

        scenes = tuple(
            Scene(
                id=new_id(),
                order_index=index,
                **parse_outline(raw).model_dump(),
            )
            for index, raw in enumerate(raw_scenes)
        )
        title = params.title or str(data.get("title") or "").strip()
        if not title:
            raise ValidationError("Scaffold must include a title", field_name="title")

        logger.info("Scaffold generated", frame=params.frame, scenes=len(scenes))
        return ScaffoldDraft(
            title=title[:200],
            description=str(data.get("description") or "").strip()[:5000],
            scenes=scenes,
        )

    async def create_adventure(self, owner_id: str, params: AdventureParams) -> Adventure:
        """Generate a scaffold and persist it as a new adventure.

        Initial generation does not consume the scaffold budget.
        """
        draft = await self.generate(params)
        adventure = Adventure(
            owner_id=owner_id,
            title=draft.title,
            description=draft.description,
            frame=params.frame,
            custom_frame_description=params.custom_frame_description,
            focus=params.focus,
            party_size=params.party_size,
            party_level=params.party_level,
            difficulty=params.difficulty,
            stakes=params.stakes,
            scenes=draft.scenes,
        )
        return self.database.create_adventure(adventure)

    # =========================================================================
    # Regeneration
    # =========================================================================

    async def regenerate_scene(self, adventure_id: str, scene_id: str) -> Scene:
        """Rewrite one unlocked scene outline.

        Raises:
            NotFoundError: If the adventure or scene does not exist.
            ValidationError: If the scene is locked or the output malformed.
            InvalidStateTransitionError: If the scene is confirmed.
            LimitExceededError: If the scaffold budget is exhausted.
        """
        adventure = self.database.get_adventure(adventure_id)
        scene = adventure.get_scene(scene_id)
        self._require_regenerable(scene)
        self.budget.check_and_reserve(adventure, RegenerationKind.SCAFFOLD)

        locked = [s for s in adventure.scenes if s.locked]
        system_prompt, user_prompt = build_scene_regeneration_prompts(adventure, [scene], locked)
        data = await self.llm.complete_json(
            system_prompt,
            user_prompt,
            temperature=self.settings.scaffold_temperature,
        )
        outline = parse_outline(data)

        def mutate(current: Adventure) -> Adventure:
            current_scene = current.get_scene(scene_id)
            self._require_regenerable(current_scene)
            updated = _apply_outline(current_scene, outline)
            return self.budget.commit(current, RegenerationKind.SCAFFOLD).with_scene(updated)

        stored = self.database.update_adventure(adventure_id, mutate)
        logger.info(
            "Scene regenerated",
            adventure_id=adventure_id,
            scene_id=scene_id,
            scaffold_regens_used=stored.scaffold_regens_used,
        )
        return stored.get_scene(scene_id)

    async def regenerate_unlocked(self, adventure_id: str) -> list[Scene]:
        """Rewrite every unlocked scene in one call.

        Counts as a single scaffold regeneration. Locked scenes are passed
        as context and left untouched.

        Raises:
            ValidationError: If no scene is unlocked or the output malformed.
            InvalidStateTransitionError: If an unlocked scene is confirmed.
            LimitExceededError: If the scaffold budget is exhausted.
        """
        adventure = self.database.get_adventure(adventure_id)
        targets = [s for s in adventure.scenes if not s.locked]
        locked = [s for s in adventure.scenes if s.locked]
        if not targets:
            raise ValidationError(
                "Every scene is locked; unlock a scene to regenerate it",
                field_name="locked",
            )
        for scene in targets:
            require_unconfirmed(scene, "regenerate")
        self.budget.check_and_reserve(adventure, RegenerationKind.SCAFFOLD)

        system_prompt, user_prompt = build_scene_regeneration_prompts(adventure, targets, locked)
        data = await self.llm.complete_json(
            system_prompt,
            user_prompt,
            temperature=self.settings.scaffold_temperature,
        )
        raw_scenes = data.get("scenes")
        if not isinstance(raw_scenes, list) or len(raw_scenes) != len(targets):
            raise ValidationError(
                f"Expected {len(targets)} regenerated scenes",
                field_name="scenes",
                invalid_value=len(raw_scenes) if isinstance(raw_scenes, list) else None,
            )
        outlines = {
            scene.id: parse_outline(raw) for scene, raw in zip(targets, raw_scenes, strict=True)
        }

        def mutate(current: Adventure) -> Adventure:
            updated = []
            for scene_id, outline in outlines.items():
                current_scene = current.get_scene(scene_id)
                self._require_regenerable(current_scene)
                updated.append(_apply_outline(current_scene, outline))
            return self.budget.commit(current, RegenerationKind.SCAFFOLD).with_scenes(updated)

        stored = self.database.update_adventure(adventure_id, mutate)
        logger.info(
            "Unlocked scenes regenerated",
            adventure_id=adventure_id,
            scenes=len(outlines),
            scaffold_regens_used=stored.scaffold_regens_used,
        )
        return [stored.get_scene(scene_id) for scene_id in outlines]

    @staticmethod
    def _require_regenerable(scene: Scene) -> None:
        if scene.locked:
            raise ValidationError(
                f"Scene {scene.id} is locked; unlock it to regenerate",
                field_name="locked",
                invalid_value=True,
            )
        require_unconfirmed(scene, "regenerate")


__all__ = [
    "SceneOutline",
    "ScaffoldDraft",
    "ScaffoldGenerator",
    "parse_outline",
]
