"""Server actions: the caller-facing surface of the generation engine.

Every action takes the authenticated caller's ``user_id``, checks that the
caller owns the adventure, runs the operation and returns an
``ActionResult``. Engine errors are converted to structured failures
(error code, message, details such as ``used``/``limit`` or
``blocking_scenes``) and are never raised to the caller. Unexpected
exceptions propagate.

Example:
    >>> actions = AdventureActions.create()
    >>> result = await actions.expand_scene(user_id, adventure_id, scene_id)
    >>> if not result.success and result.error == ErrorCode.LIMIT_EXCEEDED:
    ...     print(result.details["used"], result.details["limit"])
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from daggergm.content.embeddings import EmbeddingProvider, OpenAIEmbeddingProvider
from daggergm.content.retrieval import RetrievalService
from daggergm.content.store import ContentStore
from daggergm.core.config import Settings, get_settings
from daggergm.core.exceptions import AuthorizationError, DaggerGMError, ValidationError
from daggergm.core.logging import bind_context, clear_context, configure_logging, get_logger
from daggergm.generation.expansion import SceneExpansionEngine
from daggergm.generation.llm import LLMClient, OpenAILLMClient
from daggergm.generation.scaffold import ScaffoldGenerator
from daggergm.models.adventure import Adventure, AdventureParams, ExpansionEdit
from daggergm.models.results import ActionResult, ErrorCode
from daggergm.storage.database import Database
from daggergm.workflow import confirmation
from daggergm.workflow.budget import RegenerationBudget
from daggergm.workflow.export_gate import can_export, export_tree

logger = get_logger(__name__)

ModelT = type[BaseModel]


def _coerce(model: ModelT, value: Any, field_name: str) -> Any:
    """Accept either a model instance or a plain dict of its fields."""
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        raise ValidationError(
            f"Invalid {field_name}: {error['msg']}",
            field_name=".".join(str(part) for part in error["loc"]) or field_name,
        ) from exc


class AdventureActions:
    """Caller-facing adventure operations."""

    def __init__(
        self,
        database: Database,
        scaffold: ScaffoldGenerator,
        expansion: SceneExpansionEngine,
        *,
        budget: RegenerationBudget | None = None,
    ) -> None:
        self.database = database
        self.scaffold = scaffold
        self.expansion = expansion
        self.budget = budget or RegenerationBudget()

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        *,
        database: Database | None = None,
        llm: LLMClient | None = None,
        embeddings: EmbeddingProvider | None = None,
    ) -> "AdventureActions":
        """Wire up the engine from settings.

        Any collaborator can be supplied to replace the default one.
        Logging is configured from the settings.
        """
        settings = settings or get_settings()
        configure_logging(level=settings.log_level, json_format=settings.log_json)
        database = database or Database(settings.storage.database_path)
        llm = llm or OpenAILLMClient(ai_settings=settings.ai)
        embeddings = embeddings or OpenAIEmbeddingProvider(ai_settings=settings.ai)
        budget = RegenerationBudget()

        retrieval = RetrievalService(ContentStore(database), embeddings, settings.retrieval)
        scaffold = ScaffoldGenerator(database, llm, budget=budget, settings=settings.generation)
        expansion = SceneExpansionEngine(
            database,
            retrieval,
            llm,
            budget=budget,
            settings=settings.generation,
        )
        return cls(database, scaffold, expansion, budget=budget)

    # =========================================================================
    # Plumbing
    # =========================================================================

    async def _execute(
        self,
        action: str,
        run: Callable[[], Awaitable[ActionResult]],
        **context: Any,
    ) -> ActionResult:
        bind_context(action=action, **context)
        try:
            return await run()
        except DaggerGMError as exc:
            logger.warning("Action failed", error_type=type(exc).__name__, message=exc.message)
            return ActionResult.from_error(exc)
        finally:
            clear_context()

    def _execute_sync(
        self,
        action: str,
        run: Callable[[], ActionResult],
        **context: Any,
    ) -> ActionResult:
        bind_context(action=action, **context)
        try:
            return run()
        except DaggerGMError as exc:
            logger.warning("Action failed", error_type=type(exc).__name__, message=exc.message)
            return ActionResult.from_error(exc)
        finally:
            clear_context()

    def _load_owned(self, user_id: str, adventure_id: str) -> Adventure:
        """Load an adventure the caller owns.

        Raises:
            NotFoundError: If the adventure does not exist.
            AuthorizationError: If the caller is not the owner.
        """
        adventure = self.database.get_adventure(adventure_id)
        if not user_id or adventure.owner_id != user_id:
            raise AuthorizationError(
                "You do not have access to this adventure",
                details={"adventure_id": adventure_id},
            )
        return adventure

    def _update_scene(
        self,
        adventure_id: str,
        scene_id: str,
        transition: Callable[[Any], Any],
    ) -> Adventure:
        def mutate(current: Adventure) -> Adventure:
            return current.with_scene(transition(current.get_scene(scene_id)))

        return self.database.update_adventure(adventure_id, mutate)

    # =========================================================================
    # Generation
    # =========================================================================

    async def generate_scaffold(
        self,
        user_id: str,
        params: AdventureParams | dict[str, Any],
    ) -> ActionResult:
        """Create a new adventure from generated scene outlines."""

        async def run() -> ActionResult:
            if not user_id:
                raise AuthorizationError("A signed-in user is required")
            adventure_params = _coerce(AdventureParams, params, "adventure parameters")
            adventure = await self.scaffold.create_adventure(user_id, adventure_params)
            return ActionResult.ok(adventure=adventure.model_dump(mode="json"))

        return await self._execute("generate_scaffold", run)

    async def expand_scene(self, user_id: str, adventure_id: str, scene_id: str) -> ActionResult:
        """Generate or regenerate a scene's expansion."""

        async def run() -> ActionResult:
            self._load_owned(user_id, adventure_id)
            expansion = await self.expansion.expand(adventure_id, scene_id)
            return ActionResult.ok(expansion=expansion.model_dump(mode="json"))

        return await self._execute(
            "expand_scene", run, adventure_id=adventure_id, scene_id=scene_id
        )

    async def refine_expansion(
        self,
        user_id: str,
        adventure_id: str,
        scene_id: str,
        instruction: str,
    ) -> ActionResult:
        """Rewrite an expansion's prose following a GM instruction."""

        async def run() -> ActionResult:
            self._load_owned(user_id, adventure_id)
            expansion = await self.expansion.refine(adventure_id, scene_id, instruction)
            return ActionResult.ok(expansion=expansion.model_dump(mode="json"))

        return await self._execute(
            "refine_expansion", run, adventure_id=adventure_id, scene_id=scene_id
        )

    async def regenerate_scaffold_scene(
        self,
        user_id: str,
        adventure_id: str,
        scene_id: str,
    ) -> ActionResult:
        """Rewrite one unlocked scene outline."""

        async def run() -> ActionResult:
            self._load_owned(user_id, adventure_id)
            scene = await self.scaffold.regenerate_scene(adventure_id, scene_id)
            return ActionResult.ok(scene=scene.model_dump(mode="json"))

        return await self._execute(
            "regenerate_scaffold_scene", run, adventure_id=adventure_id, scene_id=scene_id
        )

    async def regenerate_scaffold(self, user_id: str, adventure_id: str) -> ActionResult:
        """Rewrite every unlocked scene outline in one regeneration."""

        async def run() -> ActionResult:
            self._load_owned(user_id, adventure_id)
            scenes = await self.scaffold.regenerate_unlocked(adventure_id)
            return ActionResult.ok(scenes=[scene.model_dump(mode="json") for scene in scenes])

        return await self._execute("regenerate_scaffold", run, adventure_id=adventure_id)

    # =========================================================================
    # Confirmation & Editing
    # =========================================================================

    async def confirm_expansion(
        self,
        user_id: str,
        adventure_id: str,
        scene_id: str,
    ) -> ActionResult:
        """Approve a scene's expansion."""

        async def run() -> ActionResult:
            self._load_owned(user_id, adventure_id)
            stored = self._update_scene(adventure_id, scene_id, confirmation.confirm)
            logger.info("Scene confirmed")
            return ActionResult.ok(scene=stored.get_scene(scene_id).model_dump(mode="json"))

        return await self._execute(
            "confirm_expansion", run, adventure_id=adventure_id, scene_id=scene_id
        )

    async def unconfirm_expansion(
        self,
        user_id: str,
        adventure_id: str,
        scene_id: str,
    ) -> ActionResult:
        """Return a confirmed scene to the editable state."""

        async def run() -> ActionResult:
            self._load_owned(user_id, adventure_id)
            stored = self._update_scene(adventure_id, scene_id, confirmation.unconfirm)
            logger.info("Scene unconfirmed")
            return ActionResult.ok(scene=stored.get_scene(scene_id).model_dump(mode="json"))

        return await self._execute(
            "unconfirm_expansion", run, adventure_id=adventure_id, scene_id=scene_id
        )

    async def edit_expansion(
        self,
        user_id: str,
        adventure_id: str,
        scene_id: str,
        edit: ExpansionEdit | dict[str, Any],
    ) -> ActionResult:
        """Apply a manual GM edit to an unconfirmed expansion."""

        async def run() -> ActionResult:
            self._load_owned(user_id, adventure_id)
            expansion_edit = _coerce(ExpansionEdit, edit, "edit")
            stored = self._update_scene(
                adventure_id,
                scene_id,
                lambda scene: confirmation.edit_expansion(scene, expansion_edit),
            )
            expansion = confirmation.require_expansion(stored.get_scene(scene_id))
            return ActionResult.ok(expansion=expansion.model_dump(mode="json"))

        return await self._execute(
            "edit_expansion", run, adventure_id=adventure_id, scene_id=scene_id
        )

    async def set_scene_locked(
        self,
        user_id: str,
        adventure_id: str,
        scene_id: str,
        locked: bool,
    ) -> ActionResult:
        """Lock or unlock a scene for scaffold regeneration."""

        async def run() -> ActionResult:
            self._load_owned(user_id, adventure_id)
            stored = self._update_scene(
                adventure_id,
                scene_id,
                lambda scene: scene.evolve(locked=locked),
            )
            return ActionResult.ok(scene=stored.get_scene(scene_id).model_dump(mode="json"))

        return await self._execute(
            "set_scene_locked", run, adventure_id=adventure_id, scene_id=scene_id
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get_regeneration_counts(self, user_id: str, adventure_id: str) -> ActionResult:
        """Used and remaining regenerations for both budgets."""

        def run() -> ActionResult:
            adventure = self._load_owned(user_id, adventure_id)
            return ActionResult.ok(counts=self.budget.counts(adventure).model_dump())

        return self._execute_sync("get_regeneration_counts", run, adventure_id=adventure_id)

    def can_export(self, user_id: str, adventure_id: str) -> ActionResult:
        """Report whether every scene is confirmed."""

        def run() -> ActionResult:
            check = can_export(self._load_owned(user_id, adventure_id))
            return ActionResult.ok(allowed=check.allowed, blocking_scenes=check.blocking_scenes)

        return self._execute_sync("can_export", run, adventure_id=adventure_id)

    def get_export_tree(self, user_id: str, adventure_id: str) -> ActionResult:
        """Full adventure tree for rendering, only once export is allowed."""

        def run() -> ActionResult:
            adventure = self._load_owned(user_id, adventure_id)
            check = can_export(adventure)
            if not check.allowed:
                return ActionResult.failure(
                    ErrorCode.EXPORT_BLOCKED,
                    "Every scene must be confirmed before export",
                    details={"blocking_scenes": check.blocking_scenes},
                )
            return ActionResult.ok(adventure=export_tree(adventure))

        return self._execute_sync("get_export_tree", run, adventure_id=adventure_id)


__all__ = [
    "AdventureActions",
]
