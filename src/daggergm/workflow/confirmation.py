"""Per-scene confirmation state machine.

    not_expanded --expand--> expanded --confirm--> confirmed
                                ^                      |
                                +------unconfirm-------+

A confirmed scene cannot be regenerated, refined or edited until it is
explicitly unconfirmed. Nothing ever confirms a scene implicitly. There is
no terminal state.

All functions are pure: they take a Scene and return a new Scene.
"""

from __future__ import annotations

from datetime import datetime

from daggergm.core.exceptions import InvalidStateTransitionError, NotExpandedError
from daggergm.models.adventure import ExpansionEdit, Scene, SceneExpansion, utc_now
from daggergm.models.enums import SceneState


def scene_state(scene: Scene) -> SceneState:
    return scene.state


def require_unconfirmed(scene: Scene, action: str) -> None:
    """Raise if the scene is confirmed.

    Raises:
        InvalidStateTransitionError: If the scene is confirmed.
    """
    if scene.state == SceneState.CONFIRMED:
        raise InvalidStateTransitionError(
            f"Cannot {action} a confirmed scene; unconfirm it first",
            scene_id=scene.id,
            current_state=str(scene.state),
            expected_states=[str(SceneState.NOT_EXPANDED), str(SceneState.EXPANDED)],
        )


def require_expansion(scene: Scene) -> SceneExpansion:
    """Return the scene's expansion.

    Raises:
        NotExpandedError: If the scene has not been expanded.
    """
    if scene.expansion is None:
        raise NotExpandedError(f"Scene {scene.id} has not been expanded", scene_id=scene.id)
    return scene.expansion


def apply_expansion(scene: Scene, expansion: SceneExpansion) -> Scene:
    """Attach a newly generated expansion, replacing any previous one.

    The stored expansion is always unconfirmed.

    Raises:
        InvalidStateTransitionError: If the scene is confirmed.
    """
    require_unconfirmed(scene, "regenerate")
    if expansion.confirmed:
        expansion = expansion.evolve(confirmed=False, confirmed_at=None)
    return scene.evolve(expansion=expansion)


def confirm(scene: Scene, *, now: datetime | None = None) -> Scene:
    """Mark a scene's expansion as confirmed.

    Confirming an already confirmed scene is a no-op that keeps the
    original ``confirmed_at``.

    Raises:
        NotExpandedError: If the scene has no expansion.
    """
    expansion = require_expansion(scene)
    if expansion.confirmed:
        return scene
    confirmed = expansion.evolve(confirmed=True, confirmed_at=now or utc_now())
    return scene.evolve(expansion=confirmed)


def unconfirm(scene: Scene) -> Scene:
    """Return a confirmed scene to ``expanded``.

    Unconfirmed or unexpanded scenes are returned unchanged.
    """
    if scene.expansion is None or not scene.expansion.confirmed:
        return scene
    return scene.evolve(expansion=scene.expansion.evolve(confirmed=False, confirmed_at=None))


def edit_expansion(scene: Scene, edit: ExpansionEdit) -> Scene:
    """Apply a manual GM edit. The result is never confirmed.

    Raises:
        NotExpandedError: If the scene has no expansion.
        InvalidStateTransitionError: If the scene is confirmed.
    """
    expansion = require_expansion(scene)
    require_unconfirmed(scene, "edit")

    changes: dict[str, object] = {}
    if edit.descriptions is not None:
        changes["descriptions"] = edit.descriptions
    if edit.narration is not None:
        changes["narration"] = edit.narration.strip() or None
    if edit.environment_description is not None and expansion.environment is not None:
        changes["environment"] = expansion.environment.evolve(
            custom_description=edit.environment_description.strip() or None
        )
    if not changes:
        return scene
    return scene.evolve(expansion=expansion.evolve(**changes))


def clear_expansion(scene: Scene) -> Scene:
    """Drop a scene's expansion after its outline changed.

    Raises:
        InvalidStateTransitionError: If the scene is confirmed.
    """
    require_unconfirmed(scene, "regenerate")
    if scene.expansion is None:
        return scene
    return scene.evolve(expansion=None)


__all__ = [
    "scene_state",
    "require_unconfirmed",
    "require_expansion",
    "apply_expansion",
    "confirm",
    "unconfirm",
    "edit_expansion",
    "clear_expansion",
]
